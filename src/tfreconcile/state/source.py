"""Where the state file lives: a local path or an S3 object."""

import os
import tempfile
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import urlparse

from botocore.exceptions import BotoCoreError, ClientError

from tfreconcile.utils.errors import ErrorContext, StateSourceError, error_handler
from tfreconcile.utils.logging import get_logger
from tfreconcile.utils.retry import with_retry

logger = get_logger(__name__)


def parse_s3_uri(uri: str) -> Tuple[str, str]:
    """Split s3://bucket/key into (bucket, key).

    Raises:
        StateSourceError: If the URI is not s3:// or lacks a bucket or key
    """
    parsed = urlparse(uri)
    bucket = parsed.netloc
    key = parsed.path.lstrip('/')
    if parsed.scheme != 's3' or not bucket or not key:
        raise StateSourceError(
            f"Invalid S3 URI '{uri}'",
            suggestions=["Use the form s3://bucket/path/to/terraform.tfstate"]
        )
    return bucket, key


class StateSource:
    """A state file and the local working copy the run operates on."""

    def __init__(self, working_path: Path, display_name: str):
        self.working_path = Path(working_path)
        self.display_name = display_name

    @property
    def original_name(self) -> str:
        """File name used to derive backup artifact names."""
        return Path(self.display_name).name

    @property
    def is_remote(self) -> bool:
        return False

    def read_bytes(self) -> bytes:
        """Read the working copy.

        Raises:
            StateSourceError: If the file cannot be read
        """
        try:
            return self.working_path.read_bytes()
        except OSError as e:
            raise StateSourceError(
                f"Failed to read state file '{self.working_path}': {e}",
                cause=e,
                suggestions=["Check the --state path and file permissions"]
            ) from e

    def publish(self) -> None:
        """Make the working copy visible to other users of the state."""
        pass

    def cleanup(self) -> None:
        pass


class LocalStateSource(StateSource):
    """A state file on local disk. The working copy is the file itself."""

    def __init__(self, path):
        super().__init__(Path(path), str(path))


class S3StateSource(StateSource):
    """A state object in S3, downloaded to a temporary working copy."""

    def __init__(self, uri: str, client, temp_dir: Optional[str] = None):
        """Initialize S3 state source.

        Args:
            uri: s3://bucket/key of the state object
            client: boto3 S3 client
            temp_dir: Directory for the working copy (default system temp)
        """
        self.bucket, self.key = parse_s3_uri(uri)
        self.client = client
        fd, path = tempfile.mkstemp(prefix='tfreconcile-download-', suffix='.tfstate', dir=temp_dir)
        os.close(fd)
        super().__init__(Path(path), uri)

    @property
    def original_name(self) -> str:
        return Path(self.key).name

    @property
    def is_remote(self) -> bool:
        return True

    def download(self) -> Path:
        """Download the state object to the working copy.

        Raises:
            StateSourceError: If the download fails
        """
        logger.info(f"Downloading state from {self.display_name}")
        try:
            self._download()
        except (ClientError, BotoCoreError) as e:
            wrapped = error_handler.handle_exception(
                e, ErrorContext(operation='download_state', aws_service='s3')
            )
            raise StateSourceError(
                f"Failed to download state from {self.display_name}: {wrapped.message}",
                cause=e,
                suggestions=wrapped.suggestions
            ) from e
        logger.info("Download complete")
        return self.working_path

    def publish(self) -> None:
        """Upload the working copy back over the state object.

        Raises:
            StateSourceError: If the upload fails
        """
        logger.info(f"Uploading updated state to {self.display_name}")
        try:
            self._upload()
        except (ClientError, BotoCoreError) as e:
            wrapped = error_handler.handle_exception(
                e, ErrorContext(operation='upload_state', aws_service='s3')
            )
            raise StateSourceError(
                f"Failed to upload state to {self.display_name}: {wrapped.message}",
                cause=e,
                suggestions=wrapped.suggestions
            ) from e
        logger.info("Upload complete")

    def cleanup(self) -> None:
        try:
            self.working_path.unlink()
        except FileNotFoundError:
            pass

    @with_retry(max_retries=3, base_delay=1.0)
    def _download(self) -> None:
        response = self.client.get_object(Bucket=self.bucket, Key=self.key)
        self.working_path.write_bytes(response['Body'].read())

    @with_retry(max_retries=3, base_delay=1.0)
    def _upload(self) -> None:
        # No ACL or metadata overrides; bucket defaults and versioning apply
        self.client.put_object(Bucket=self.bucket, Key=self.key, Body=self.working_path.read_bytes())


def open_state_source(state_path: Optional[str] = None, s3_uri: Optional[str] = None, clients=None) -> StateSource:
    """Build the state source for a run.

    Args:
        state_path: Local state file path
        s3_uri: s3://bucket/key, takes precedence when set
        clients: AWSClientManager, required for S3

    Returns:
        A ready-to-read StateSource

    Raises:
        StateSourceError: If neither location is given or the download fails
    """
    if s3_uri:
        source = S3StateSource(s3_uri, clients.get_client('s3'))
        try:
            source.download()
        except StateSourceError:
            source.cleanup()
            raise
        return source
    if state_path:
        return LocalStateSource(state_path)
    raise StateSourceError("No state file given", suggestions=["Pass --state or --s3-state"])
