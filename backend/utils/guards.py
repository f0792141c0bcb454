from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId

from utils.errors import ValidationError

# -------------------------------
# ObjectId Guards
# -------------------------------

def parse_object_id(value: str, name: str = "id") -> ObjectId:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise ValidationError(f"Invalid {name}")


def try_object_id(value) -> Optional[ObjectId]:
    """
    For ids of owned resources: a malformed id is treated like an id that
    matches nothing, so callers can answer with their usual not-found.
    """
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None
