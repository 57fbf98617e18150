"""Run reports: plain text, JSON and the rich console summary."""

from tfreconcile.report.renderer import ArtifactRef, ReportData, build_json, render_json, render_text

__all__ = ['ArtifactRef', 'ReportData', 'build_json', 'render_json', 'render_text']
