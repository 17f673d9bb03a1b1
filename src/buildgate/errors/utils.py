"""Error utility functions."""

from __future__ import annotations

from buildgate.errors.step import InfrastructureFailure, StepError


def is_infrastructure(error: BaseException) -> bool:
    """Check if an error means the tool could not be started.

    Checks the error's own type first, then its semantic code, so that a
    plain StepError raised with an infrastructure code counts too.
    """
    if isinstance(error, InfrastructureFailure):
        return True
    if isinstance(error, StepError):
        return error.error_code.is_infrastructure
    return False


def truncate_error(message: str, max_bytes: int = 102_400) -> str:
    """Truncate message to max_bytes, appending '[TRUNCATED]' marker.

    Keeps a runaway compiler log from bloating results and status checks.

    Args:
        message: The message to truncate
        max_bytes: Maximum size in bytes (default: 100KB)

    Returns:
        Original message if within limit, otherwise truncated with marker.
    """
    if not message:
        return message

    encoded = message.encode("utf-8", errors="replace")
    if len(encoded) <= max_bytes:
        return message

    marker = " [TRUNCATED]"
    target_bytes = max_bytes - len(marker.encode("utf-8"))
    if target_bytes <= 0:
        return marker.strip()

    return encoded[:target_bytes].decode("utf-8", errors="ignore") + marker


def truncate_output(output: str, max_bytes: int = 102_400) -> str:
    """Keep the last max_bytes of captured output, prefixing '[TRUNCATED]'.

    Compilers and test harnesses print their verdict last, so the tail is
    the part worth keeping.
    """
    if not output:
        return output

    encoded = output.encode("utf-8", errors="replace")
    if len(encoded) <= max_bytes:
        return output

    marker = "[TRUNCATED] "
    target_bytes = max_bytes - len(marker.encode("utf-8"))
    if target_bytes <= 0:
        return marker.strip()

    return marker + encoded[-target_bytes:].decode("utf-8", errors="ignore")
