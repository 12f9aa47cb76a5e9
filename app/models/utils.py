from typing import Any
from bson import ObjectId


def serialize_doc(doc: Any) -> Any:
    """
    Convert a MongoDB document into a JSON-friendly value.
    ``_id`` is exposed as a plain string ``id``; nested ObjectIds become strings.
    """
    if isinstance(doc, ObjectId):
        return str(doc)
    if isinstance(doc, list):
        return [serialize_doc(x) for x in doc]
    if isinstance(doc, dict):
        out = {}
        for k, v in doc.items():
            out["id" if k == "_id" else k] = serialize_doc(v)
        return out
    return doc


def serialize_user(doc: dict) -> dict:
    user = serialize_doc(doc)
    user.pop("password", None)
    return user
