"""Content processing utilities - deep helper module."""

from typing import Any


def json_contains(container: Any, fragment: Any) -> bool:
    """
    Structural containment with the same rules as PostgreSQL's jsonb ``@>``.

    Used where the database cannot evaluate containment itself (SQLite).

    - objects: every key of *fragment* exists in *container* and its value
      is contained in the container's value
    - arrays: every element of *fragment* is contained in some element of
      *container* (order and multiplicity ignored)
    - scalars: equal

    Args:
        container: Stored JSON value
        fragment: JSON value to look for

    Returns:
        True when *container* contains *fragment*
    """
    if isinstance(fragment, dict):
        if not isinstance(container, dict):
            return False
        return all(
            key in container and json_contains(container[key], value)
            for key, value in fragment.items()
        )
    if isinstance(fragment, list):
        if not isinstance(container, list):
            return False
        return all(
            any(json_contains(item, wanted) for item in container)
            for wanted in fragment
        )
    if isinstance(container, (dict, list)):
        return False
    # bool is an int subclass; JSON keeps them apart
    if isinstance(fragment, bool) or isinstance(container, bool):
        return isinstance(fragment, bool) and isinstance(container, bool) and fragment == container
    return container == fragment
