"""Identifier factories.

Stored entities and the records embedded in a task (history, comments,
deliveries) get CUID2 ids. Portal access ids are UUID4 strings because clients
paste them from their portal link.
"""

import uuid

from cuid2 import cuid_wrapper

cuid_generator = cuid_wrapper()


def generate_cuid() -> str:
    new_id = cuid_generator()
    if not isinstance(new_id, str):
        raise TypeError(f"cuid generator returned {type(new_id).__name__}, expected str")
    return new_id


def generate_access_id() -> str:
    return str(uuid.uuid4())
