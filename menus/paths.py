"""Materialized path arithmetic.

A path is the separator-joined chain of ids from the root item down to and
including the item itself, e.g. ``"4.17.23"``. Root items carry just their
own id. Everything here is pure string work; nothing touches the database.
"""

from .conf import get_setting


def separator():
    return get_setting('PATH_SEPARATOR')


def path_of(ancestor_ids, own_id):
    """Join the ancestor ids (root first) and the item's own id"""
    return separator().join(str(part) for part in [*ancestor_ids, own_id])


def child_path(parent_path, own_id):
    if not parent_path:
        return str(own_id)
    return f"{parent_path}{separator()}{own_id}"


def split_path(path):
    if not path:
        return []
    return path.split(separator())


def descendant_prefix(path):
    """Prefix shared by every strict descendant of ``path``"""
    return f"{path}{separator()}"


def is_descendant_path(candidate, ancestor):
    return candidate.startswith(descendant_prefix(ancestor))


def depth_of(path):
    return len(split_path(path))


def rebase_path(path, old_prefix, new_prefix):
    """Swap the leading ``old_prefix`` chain of ``path`` for ``new_prefix``.

    Used when a subtree moves: every descendant keeps its tail below the
    moved node and gets the node's new ancestry in front of it.
    """
    if path == old_prefix:
        return new_prefix
    if not is_descendant_path(path, old_prefix):
        raise ValueError(f"{path!r} is not inside {old_prefix!r}")
    return new_prefix + path[len(old_prefix):]
