"""ID generators (CUID2 with a short type prefix)."""

from cuid2 import cuid_wrapper

cuid_generator = cuid_wrapper()

TASK_ID_PREFIX = "tsk_"
HISTORY_ID_PREFIX = "th_"


def generate_cuid() -> str:
    """Generate a collision-resistant unique identifier (CUID2)."""
    result = cuid_generator()
    if not isinstance(result, str):
        raise TypeError(
            f"Expected str from cuid_generator, got {type(result).__name__}"
        )
    return result


def generate_task_id() -> str:
    """New task id, e.g. 'tsk_k0x9...'."""
    return f"{TASK_ID_PREFIX}{generate_cuid()}"


def generate_history_id() -> str:
    """New task history entry id."""
    return f"{HISTORY_ID_PREFIX}{generate_cuid()}"
