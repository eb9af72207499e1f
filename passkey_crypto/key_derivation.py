#!/usr/bin/env python3
#
# Copyright (c) 2022 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Derivation of symmetric AES keys from passwords"""

from typing import Optional

from .exceptions import KeyDerivationError
from .internal_types import PasswordMaterial
from .provider import CryptoProvider, default_provider
from .util import password_bytes
from .constants import (
    KEY_SIZE_BYTES,
    PBKDF2_COUNT,
    MIN_SALT_SIZE_BYTES,
  )

class KeyDerivationService:
  """Turns a password and a salt into a 256-bit AES key with PBKDF2-HMAC-SHA-256.

  Derivation is a pure function of (password, salt, iterations). It never fails because a
  password is wrong; a wrong password simply yields a different key, which is only detected
  when that key fails an AEAD integrity check downstream.
  """

  PBKDF2_COUNT = PBKDF2_COUNT
  """Default, and minimum, number of hash iterations"""

  MIN_SALT_SIZE_BYTES = MIN_SALT_SIZE_BYTES
  """Smallest accepted salt"""

  KEY_SIZE_BYTES = KEY_SIZE_BYTES
  """Number of bytes in a derived key"""

  _provider: CryptoProvider

  def __init__(self, provider: Optional[CryptoProvider]=None):
    if provider is None:
      provider = default_provider()
    self._provider = provider

  def derive_key(
        self,
        password: PasswordMaterial,
        salt: bytes,
        iterations: Optional[int]=None
      ) -> bytes:
    """Derive a deterministic AES-256 key from a password and a salt.

    Args:
        password (PasswordMaterial):
                              The user's password. A str is encoded as UTF-8.
        salt (bytes):         The per-user salt. Must be at least 16 bytes. It is not secret but must be
                              preserved to regenerate the same key.
        iterations (Optional[int], optional):
                              Number of PBKDF2 iterations. Must be at least 65536. If None, 65536 is used.
                              Defaults to None.

    Raises:
        KeyDerivationError: The password, salt or iteration count was rejected

    Returns:
        bytes: A 32-byte key deterministically derived from password, salt and iterations
    """
    if iterations is None:
      iterations = self.PBKDF2_COUNT
    if not isinstance(iterations, int) or isinstance(iterations, bool):
      raise KeyDerivationError(f"PBKDF2 iteration count must be an int, got {type(iterations).__name__}")
    if iterations < self.PBKDF2_COUNT:
      raise KeyDerivationError(f"PBKDF2 iteration count must be at least {self.PBKDF2_COUNT}, got {iterations}")
    if not isinstance(salt, (bytes, bytearray)):
      raise KeyDerivationError(f"Salt must be bytes, got {type(salt).__name__}")
    if len(salt) < self.MIN_SALT_SIZE_BYTES:
      raise KeyDerivationError(f"Salt must be at least {self.MIN_SALT_SIZE_BYTES} bytes in length, got {len(salt)}")
    try:
      bin_password = password_bytes(password)
    except TypeError as e:
      raise KeyDerivationError(str(e)) from e
    try:
      key = self._provider.pbkdf2(bin_password, bytes(salt), iterations, key_size_bytes=self.KEY_SIZE_BYTES)
    except (ValueError, TypeError) as e:
      raise KeyDerivationError("Key derivation parameters were rejected") from e
    return key
