"""Phase graph nodes. Each is an async function bound to its collaborators with functools.partial."""
