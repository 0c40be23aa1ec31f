from core.imports import secrets, string

ID_LENGTH = 10
ID_ALPHABET = string.ascii_uppercase + string.digits


def generate_id(prefix="", length=ID_LENGTH):
    """Return an opaque random identifier of ``length`` characters after ``prefix``.

    Every table keyed by a generated id (orders, order items, reviews, users,
    carts, products) goes through this function.
    """
    return prefix + "".join(secrets.choice(ID_ALPHABET) for _ in range(length))
