import uuid


def generate_id(prefix: str = "") -> str:
    """
    Create a unique id

    Args:
        prefix: Optional prefix, e.g. "aprv_"

    Returns:
        str: The unique id
    """
    return f"{prefix}{uuid.uuid4().hex}"
