import uuid


def generate_user_id() -> str:
    """
    Return a fresh opaque user id (UUID4 string, 36 chars).

    Used by SQLAlchemy as a column default and by the auth service when it
    builds a new user, so it must work when called with no arguments.
    """
    return str(uuid.uuid4())
