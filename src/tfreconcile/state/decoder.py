"""Decode raw state file bytes into a StateSnapshot."""

import json
import re
from typing import Any, BinaryIO, Dict

from pydantic import ValidationError

from tfreconcile.state.models import SUPPORTED_FORMAT_VERSION, StateSnapshot
from tfreconcile.utils.errors import DecodeError, DecodeReason
from tfreconcile.utils.logging import get_logger

logger = get_logger(__name__)

_WHITESPACE = b" \t\n\r"
_STRUCTURAL_START = (ord("{"), ord("["))
_VERSION_PATTERN = re.compile(r"^v?\d+(\.\d+){0,2}([-+][0-9A-Za-z.\-+]+)?$")

_RETIRED_VERSIONS = {
    0: (
        "the state file uses JSON syntax but has a version number of zero. "
        "There was never a JSON-based state format zero, so this state file is invalid"
    ),
    1: "version 1 state files are not supported",
    2: "version 2 state files are not supported",
    3: "version 3 state files are not supported",
}


def looks_like_legacy_binary(data: bytes) -> bool:
    """True when the first non-whitespace byte cannot start a JSON document.

    The pre-JSON state format was binary and never began with '{' or '['.
    """
    stripped = data.lstrip(_WHITESPACE)
    if not stripped:
        return False
    return stripped[0] not in _STRUCTURAL_START


def _sniff_tool_version(document: Dict[str, Any]) -> str:
    """Return the creating tool version, or "" when it does not parse as one."""
    value = document.get("terraform_version")
    if isinstance(value, str) and _VERSION_PATTERN.match(value):
        return value
    return ""


def _sniff_format_version(document: Any) -> int:
    if not isinstance(document, dict):
        raise DecodeError(
            "the state file must contain a JSON object at the top level",
            reason=DecodeReason.MALFORMED,
        )

    if "version" not in document or document["version"] is None:
        raise DecodeError(
            'the state file does not have a "version" attribute, which is required '
            "to identify the format version",
            reason=DecodeReason.MALFORMED,
        )

    version = document["version"]
    if isinstance(version, bool) or not isinstance(version, int) or version < 0:
        raise DecodeError(
            f"the version in the state file is {version!r}. A positive whole number is required",
            reason=DecodeReason.MALFORMED,
        )
    return version


def decode_snapshot(data: bytes) -> StateSnapshot:
    """Decode state file bytes.

    Args:
        data: Raw state file content

    Returns:
        Immutable StateSnapshot

    Raises:
        DecodeError: For empty input, the legacy binary format, malformed JSON,
            or any format version other than 4
    """
    if not data:
        raise DecodeError("no state", reason=DecodeReason.EMPTY_STATE)

    if looks_like_legacy_binary(data):
        raise DecodeError(
            "the state is stored in a legacy binary format that is not supported. "
            "Upgrade the state with Terraform 0.6.16 or earlier first",
            reason=DecodeReason.LEGACY_BINARY_FORMAT,
            suggestions=["Run an older Terraform release to upgrade the state file to JSON"],
        )

    try:
        document = json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeError(
            f"the state file could not be parsed as JSON: {e}",
            reason=DecodeReason.MALFORMED,
            cause=e,
        ) from e

    version = _sniff_format_version(document)

    if version in _RETIRED_VERSIONS:
        raise DecodeError(_RETIRED_VERSIONS[version], reason=DecodeReason.UNSUPPORTED_VERSION)

    if version != SUPPORTED_FORMAT_VERSION:
        creating_version = _sniff_tool_version(document)
        if creating_version:
            message = (
                f"the state file uses format version {version}, which is not supported. "
                f"This state file was created by Terraform {creating_version}"
            )
        else:
            message = (
                f"the state file uses format version {version}, which is not supported. "
                "This state file may have been created by a newer version of Terraform"
            )
        raise DecodeError(message, reason=DecodeReason.UNSUPPORTED_VERSION)

    try:
        snapshot = StateSnapshot.model_validate(document)
    except ValidationError as e:
        raise DecodeError(
            f"failed to parse state file as version {SUPPORTED_FORMAT_VERSION}: "
            f"{e.error_count()} validation error(s)",
            reason=DecodeReason.MALFORMED,
            cause=e,
        ) from e

    logger.debug(
        f"Decoded state v{snapshot.format_version} serial={snapshot.serial} "
        f"with {len(snapshot.resources)} resources"
    )
    return snapshot


def read_snapshot(stream: BinaryIO) -> StateSnapshot:
    """Read a binary stream to the end and decode it."""
    return decode_snapshot(stream.read())
