"""Backup artifacts, content hashes and change detection for a run."""

import hashlib
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel, ConfigDict, Field

from tfreconcile.utils.errors import BackupWriteError, error_handler
from tfreconcile.utils.logging import get_logger
from tfreconcile.utils.retry import with_retry

logger = get_logger(__name__)

STAMP_FORMAT = '%Y%m%dT%H%M%SZ'
HASH_SUFFIX = '.sha256'
STATE_SUFFIX = '.tfstate'
CHUNK_SIZE = 1024 * 1024


class ArtifactRole(Enum):
    """What an artifact holds."""
    ORIGINAL = "original"
    NEW = "new"
    REPORT = "report"


class BackupArtifact(BaseModel):
    """A file written once by the integrity manager and never modified."""

    model_config = ConfigDict(frozen=True)

    role: ArtifactRole
    path: Path
    content_hash: str = Field(..., description="SHA-256 hex digest of the file")
    hash_path: Path = Field(..., description="Sibling file in sha256sum format")
    created_at: datetime

    def to_dict(self) -> Dict[str, str]:
        return {
            'role': self.role.value,
            'path': str(self.path),
            'checksum': self.content_hash,
            'hash_path': str(self.hash_path),
            'created_at': self.created_at.isoformat(),
        }


class IntegrityReport(BaseModel):
    """Before/after comparison of the working state file."""

    model_config = ConfigDict(frozen=True)

    original_hash: str
    new_hash: Optional[str] = Field(None, description="None when the post-run hash failed")
    content_changed: bool
    hash_error: Optional[str] = None


def hash_bytes(data: bytes) -> str:
    """SHA-256 hex digest of data."""
    return hashlib.sha256(data).hexdigest()


def hash_file(path) -> str:
    """SHA-256 hex digest of a file, read in chunks.

    Raises:
        OSError: If the file cannot be read
    """
    digest = hashlib.sha256()
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b''):
            digest.update(chunk)
    return digest.hexdigest()


def run_stamp(run_timestamp: datetime) -> str:
    return run_timestamp.astimezone(timezone.utc).strftime(STAMP_FORMAT)


def clean_base_name(original_name: str) -> str:
    """Derive the artifact base name from the original state file name.

    'dev.tfstate' -> 'dev', 'file.txt.tfstate' -> 'file', 'Prod.JSON' -> 'prod'.
    """
    base = Path(original_name).name.lower()
    if base.endswith(STATE_SUFFIX):
        base = base[:-len(STATE_SUFFIX)]
    stem = Path(base).stem if '.' in base.lstrip('.') else base
    return stem or 'state'


def artifact_path(
    base_dir,
    original_name: str,
    role: ArtifactRole,
    run_timestamp: datetime,
    extension: str
) -> Path:
    """Deterministic artifact location.

    <base>/<YYYY>/<MM>/<stamp>/<role>.<clean base name><extension>, where the
    calendar bucket and stamp both come from the run timestamp.
    """
    moment = run_timestamp.astimezone(timezone.utc)
    directory = Path(base_dir) / f"{moment:%Y}" / f"{moment:%m}" / run_stamp(moment)
    return directory / f"{role.value}.{clean_base_name(original_name)}{extension}"


def hash_path_for(path: Path) -> Path:
    return path.with_name(path.name + HASH_SUFFIX)


def read_hash_file(path: Path) -> str:
    """Return the digest recorded in a sha256sum-format file."""
    content = Path(path).read_text().strip()
    return content.split()[0] if content else ''


def verify_artifact(path) -> Tuple[bool, str, str]:
    """Recompute an artifact's hash and compare it with its sibling file.

    Returns:
        (matches, recorded_hash, actual_hash)

    Raises:
        OSError: If the artifact or its hash file cannot be read
    """
    path = Path(path)
    recorded = read_hash_file(hash_path_for(path))
    actual = hash_file(path)
    return recorded == actual, recorded, actual


def should_publish(report: IntegrityReport, mutating_attempted: bool, gate_on_attempt: bool = False) -> bool:
    """Decide whether the updated state may be published.

    Args:
        report: Post-run integrity comparison
        mutating_attempted: A state-altering command was attempted
        gate_on_attempt: Also publish when a mutation was attempted, to cover
            remote changes that left the local file identical

    Returns:
        True when the state should be published
    """
    if report.content_changed:
        return True
    return gate_on_attempt and mutating_attempted


class ArtifactMirror:
    """Uploads artifacts and their hash files to S3 under a key prefix."""

    def __init__(self, client, bucket: str, prefix: str = 'tfreconcile-backups'):
        self.client = client
        self.bucket = bucket
        self.prefix = prefix.strip('/')

    def key_for(self, artifact: BackupArtifact, base_dir) -> str:
        try:
            relative = artifact.path.relative_to(Path(base_dir))
        except ValueError:
            relative = Path(artifact.path.name)
        return f"{self.prefix}/{relative.as_posix()}" if self.prefix else relative.as_posix()

    def upload(self, artifact: BackupArtifact, base_dir) -> str:
        """Upload an artifact and its hash file.

        Returns:
            S3 key of the artifact

        Raises:
            BackupWriteError: If either upload fails
        """
        key = self.key_for(artifact, base_dir)
        try:
            self._put(key, artifact.path.read_bytes())
            self._put(key + HASH_SUFFIX, artifact.hash_path.read_bytes())
        except (ClientError, BotoCoreError, OSError) as e:
            wrapped = error_handler.handle_exception(e)
            raise BackupWriteError(
                f"Failed to mirror {artifact.path} to s3://{self.bucket}/{key}: {wrapped.message}",
                cause=e
            ) from e
        logger.info(f"Mirrored {artifact.role.value} artifact to s3://{self.bucket}/{key}")
        return key

    @with_retry(max_retries=3, base_delay=1.0)
    def _put(self, key: str, body: bytes) -> None:
        self.client.put_object(Bucket=self.bucket, Key=key, Body=body)


class IntegrityManager:
    """Writes run artifacts and tracks whether the working state changed.

    Artifact paths are pure functions of (base dir, original name, role, run
    timestamp, extension), and existing paths are never overwritten, so a
    re-run in the same timestamp bucket is idempotent.
    """

    def __init__(
        self,
        base_dir,
        original_name: str,
        run_timestamp: Optional[datetime] = None,
        mirror: Optional[ArtifactMirror] = None
    ):
        """Initialize integrity manager.

        Args:
            base_dir: Backups root directory
            original_name: Name of the state file being reconciled
            run_timestamp: Run start time (default now, UTC)
            mirror: Optional S3 mirror for every artifact written
        """
        self.base_dir = Path(base_dir)
        self.original_name = original_name
        self.run_timestamp = run_timestamp or datetime.now(timezone.utc)
        self.mirror = mirror
        self.original_hash: Optional[str] = None
        self.artifacts: List[BackupArtifact] = []
        self.degraded: List[BackupWriteError] = []

    def path_for(self, role: ArtifactRole, extension: str) -> Path:
        return artifact_path(self.base_dir, self.original_name, role, self.run_timestamp, extension)

    def backup_original(self, data: bytes) -> Optional[BackupArtifact]:
        """Record the pristine state bytes before anything can change them.

        The original hash is computed from data itself, so change detection
        works even if the backup write fails.
        """
        self.original_hash = hash_bytes(data)
        return self.write_artifact(ArtifactRole.ORIGINAL, data, STATE_SUFFIX)

    def write_artifact(self, role: ArtifactRole, data: bytes, extension: str) -> Optional[BackupArtifact]:
        """Write an artifact and its sibling hash file, never overwriting.

        If the path already exists the existing artifact is returned, re-hashed
        from disk. Write failures are logged and recorded in self.degraded.

        Returns:
            The artifact, or None when it could not be written
        """
        path = self.path_for(role, extension)
        try:
            artifact = self._write_once(role, path, data)
        except BackupWriteError as e:
            error_handler.log_error(e)
            self.degraded.append(e)
            return None

        self.artifacts.append(artifact)
        if self.mirror is not None:
            try:
                self.mirror.upload(artifact, self.base_dir)
            except BackupWriteError as e:
                error_handler.log_error(e)
                self.degraded.append(e)
        return artifact

    def _write_once(self, role: ArtifactRole, path: Path, data: bytes) -> BackupArtifact:
        hash_path = hash_path_for(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            try:
                with open(path, 'xb') as f:
                    f.write(data)
                content_hash = hash_bytes(data)
            except FileExistsError:
                logger.info(f"Artifact {path} already exists, keeping it")
                content_hash = hash_file(path)

            if not hash_path.exists():
                hash_path.write_text(f"{content_hash}  {path.name}\n")
        except OSError as e:
            raise BackupWriteError(
                f"Failed to write {role.value} artifact {path}: {e}",
                cause=e,
                suggestions=["Check that --backups-dir is writable"]
            ) from e

        created_at = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
        logger.debug(f"Wrote {role.value} artifact {path} ({content_hash})")
        return BackupArtifact(
            role=role,
            path=path,
            content_hash=content_hash,
            hash_path=hash_path,
            created_at=created_at,
        )

    def finalize(self, working_path) -> IntegrityReport:
        """Compare the working state against the original hash.

        A failed post-run hash is treated as changed: new_hash is None and
        content_changed is True.
        """
        if self.original_hash is None:
            raise ValueError("finalize() called before backup_original()")

        try:
            new_hash = hash_file(working_path)
        except OSError as e:
            logger.warning(f"Could not hash working state {working_path}: {e}. Assuming it changed")
            return IntegrityReport(
                original_hash=self.original_hash,
                new_hash=None,
                content_changed=True,
                hash_error=str(e),
            )

        return IntegrityReport(
            original_hash=self.original_hash,
            new_hash=new_hash,
            content_changed=new_hash != self.original_hash,
        )

    def backup_new(self, working_path) -> Optional[BackupArtifact]:
        """Write the post-run working state as the 'new' artifact."""
        try:
            data = Path(working_path).read_bytes()
        except OSError as e:
            error = BackupWriteError(f"Failed to read working state {working_path}: {e}", cause=e)
            error_handler.log_error(error)
            self.degraded.append(error)
            return None
        return self.write_artifact(ArtifactRole.NEW, data, STATE_SUFFIX)

    def artifact(self, role: ArtifactRole, extension: Optional[str] = None) -> Optional[BackupArtifact]:
        for artifact in self.artifacts:
            if artifact.role == role and (extension is None or artifact.path.suffix == extension):
                return artifact
        return None
