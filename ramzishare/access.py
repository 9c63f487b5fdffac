"""In-memory access codes for private files.

Only salted digests are kept. Nothing is persisted, so every private file
becomes unreadable after a restart.
"""
import hashlib
import hmac
import logging
import os
from typing import Dict

log = logging.getLogger(__name__)

ITERATIONS = 100_000
SALT_BYTES = 16


def hash_code(code: str, salt: bytes = None) -> str:
    if salt is None:
        salt = os.urandom(SALT_BYTES)
    digest = hashlib.pbkdf2_hmac('sha256', code.encode('utf-8'), salt, ITERATIONS)
    return f'{salt.hex()}${digest.hex()}'


def check_code(code: str, stored: str) -> bool:
    salt_hex, _, digest_hex = stored.partition('$')
    try:
        salt = bytes.fromhex(salt_hex)
    except ValueError:
        return False
    return hmac.compare_digest(hash_code(code, salt).partition('$')[2], digest_hex)


class AccessCodeRegistry:
    def __init__(self):
        self._codes: Dict[str, str] = {}

    def set_code(self, name: str, code: str):
        self._codes[name] = hash_code(code)

    def verify(self, name: str, candidate: str) -> bool:
        stored = self._codes.get(name)
        if stored is None or candidate is None:
            return False
        ok = check_code(candidate, stored)
        if not ok:
            log.info('[SERVER] access code mismatch for %s', name)
        return ok

    def clear(self, name: str):
        self._codes.pop(name, None)

    def has_code(self, name: str) -> bool:
        return name in self._codes

    def __contains__(self, name):
        return self.has_code(name)

    def __len__(self):
        return len(self._codes)
