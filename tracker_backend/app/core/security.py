"""
Password hashing and rehash policy.

Hash algorithms come from passlib; this module only decides which method
to use and when a stored credential must be rehashed.
"""

from passlib.hash import hex_md5, hex_sha512, plaintext
from tracker_backend.app.models.enums import PasswordHashMethod


_HANDLERS = {
    PasswordHashMethod.PLAIN: plaintext,
    PasswordHashMethod.MD5: hex_md5,
    PasswordHashMethod.SHA512: hex_sha512,
}


def hash_password(method: PasswordHashMethod, password: str) -> str:
    """
    Hash a plaintext password with the given method.

    Hashes are deterministic so a client may send an already hashed
    credential and have it compared byte-for-byte.
    """
    return _HANDLERS[PasswordHashMethod(method)].hash(password)


def needs_rehash(
    stored_method: PasswordHashMethod,
    default_method: PasswordHashMethod,
    supplied_already_hashed: bool
) -> bool:
    """
    Decide whether a stored credential must be rehashed.

    True when the stored method differs from the application default and
    the caller supplied the plaintext (a pre-hashed credential cannot be
    rehashed).
    """
    return PasswordHashMethod(stored_method) != PasswordHashMethod(default_method) and not supplied_already_hashed


def verify_credential(user, password: str, already_hashed: bool = False) -> bool:
    """
    Check a login credential against the user's stored hash.

    Args:
        user: User whose credential is checked
        password: Supplied credential (plaintext or pre-hashed)
        already_hashed: True when `password` is already hashed with the stored method

    Returns:
        True on an exact match. Empty credentials never match.
    """
    if user is None or not password:
        return False
    supplied = password if already_hashed else hash_password(user.password_hash_method, password)
    return supplied == user.password


def set_password(user, method: PasswordHashMethod, password: str) -> None:
    """Store `password` hashed with `method`, replacing method and hash together."""
    user.password_hash_method = PasswordHashMethod(method)
    user.password = hash_password(user.password_hash_method, password)


def apply_password(user, password: str, default_method: PasswordHashMethod) -> bool:
    """
    Apply a credential coming from a user update.

    A value equal to the stored hash is the client echoing the existing
    credential back and is left untouched, unless the stored method is
    PLAIN: then the echo is the plaintext itself and is rehashed with the
    default method when that differs. Any other value is a plaintext
    password: it is stored when it differs from the current one or when
    the stored method is no longer the default.

    Returns:
        True if the stored credential changed
    """
    stored_method = PasswordHashMethod(user.password_hash_method)
    plaintext_rehash = (
        stored_method == PasswordHashMethod.PLAIN
        and needs_rehash(stored_method, default_method, False)
    )
    if password == user.password and not plaintext_rehash:
        return False
    if verify_credential(user, password) and not needs_rehash(user.password_hash_method, default_method, False):
        return False
    set_password(user, default_method, password)
    return True
