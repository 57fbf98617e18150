"""Backup artifacts and content-hash change detection."""

from tfreconcile.integrity.manager import (
    ArtifactMirror,
    ArtifactRole,
    BackupArtifact,
    IntegrityManager,
    IntegrityReport,
    artifact_path,
    hash_bytes,
    hash_file,
    should_publish,
    verify_artifact,
)

__all__ = [
    'ArtifactMirror',
    'ArtifactRole',
    'BackupArtifact',
    'IntegrityManager',
    'IntegrityReport',
    'artifact_path',
    'hash_bytes',
    'hash_file',
    'should_publish',
    'verify_artifact',
]
