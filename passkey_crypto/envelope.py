#!/usr/bin/env python3
#
# Copyright (c) 2022 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""AES-256-GCM wrapping of private keys (and text) under a password-derived key"""

from typing import Optional

import logging

from .exceptions import WrapError, KeyFormatError
from .internal_types import PasswordMaterial, PrivateKey
from .provider import CryptoProvider, default_provider
from .key_derivation import KeyDerivationService
from .asymmetric import private_key_to_pkcs8, private_key_from_pkcs8
from .util import encode_b64, decode_b64
from .constants import (
    KEY_SIZE_BYTES,
    NONCE_SIZE_BYTES,
    TAG_SIZE_BYTES,
  )

logger = logging.getLogger(__name__)

UNWRAP_FAILED_MESSAGE = "Wrapped data cannot be decrypted with the given key and iv"

class EnvelopeCipher:
  """Seals a private key under a symmetric key with AES-256-GCM.

  The wrapped form is base64(aes_gcm_encrypt(pkcs8_der(private_key)) + tag_16_bytes). The GCM tag is the only
  integrity check, and it is verified before any attempt is made to parse the key bytes. All unwrap
  failures raise the same WrapError with the same message, so a caller cannot tell a wrong password
  from a wrong iv or from tampered ciphertext.

  Wrapping is deterministic: the iv is supplied by the caller. An iv must never be reused for two
  different plaintexts under the same symmetric key; use generate_iv() for every new wrap.
  """

  KEY_SIZE_BYTES = KEY_SIZE_BYTES
  """Required size of the symmetric key"""

  NONCE_SIZE_BYTES = NONCE_SIZE_BYTES
  """Required size of the iv"""

  TAG_SIZE_BYTES = TAG_SIZE_BYTES
  """Size of the GCM tag appended to the ciphertext"""

  _provider: CryptoProvider
  _kdf: KeyDerivationService

  def __init__(
        self,
        provider: Optional[CryptoProvider]=None,
        kdf: Optional[KeyDerivationService]=None,
      ):
    """Create an envelope cipher.

    Args:
        provider (Optional[CryptoProvider], optional):
                              Source of the AES-GCM primitive and of random ivs. If None, the shared
                              pycryptodomex provider is used. Defaults to None.
        kdf (Optional[KeyDerivationService], optional):
                              Used only by decrypt_text_with_password(). If None, one is created
                              over provider. Defaults to None.
    """
    if provider is None:
      provider = default_provider()
    if kdf is None:
      kdf = KeyDerivationService(provider)
    self._provider = provider
    self._kdf = kdf

  def generate_iv(self) -> bytes:
    """Generate a fresh random 12-byte iv."""
    return self._provider.secure_random_bytes(self.NONCE_SIZE_BYTES)

  def _check_params(self, symmetric_key: bytes, iv: bytes) -> None:
    if not isinstance(symmetric_key, (bytes, bytearray)) or len(symmetric_key) != self.KEY_SIZE_BYTES:
      raise WrapError(f"Wrong key size for AES-256, expected {self.KEY_SIZE_BYTES} bytes")
    if not isinstance(iv, (bytes, bytearray)) or len(iv) != self.NONCE_SIZE_BYTES:
      raise WrapError(f"Wrong iv size for AES-GCM, expected {self.NONCE_SIZE_BYTES} bytes")

  def _seal(self, data: bytes, symmetric_key: bytes, iv: bytes) -> str:
    self._check_params(symmetric_key, iv)
    try:
      ciphertext_and_tag = self._provider.aes_gcm_encrypt(bytes(symmetric_key), bytes(iv), data)
    except (ValueError, TypeError) as e:
      raise WrapError("AES-GCM encryption failed") from e
    return encode_b64(ciphertext_and_tag)

  def _open(self, ciphertext: str, symmetric_key: bytes, iv: bytes) -> bytes:
    # Every failure below must look identical to the caller.
    try:
      self._check_params(symmetric_key, iv)
      ciphertext_and_tag = decode_b64(ciphertext, 'wrapped data', WrapError)
      if len(ciphertext_and_tag) < self.TAG_SIZE_BYTES:
        raise WrapError(UNWRAP_FAILED_MESSAGE)
      data = self._provider.aes_gcm_decrypt(bytes(symmetric_key), bytes(iv), ciphertext_and_tag)
    except (WrapError, ValueError, TypeError):
      raise WrapError(UNWRAP_FAILED_MESSAGE) from None
    return data

  def wrap(self, private_key: PrivateKey, symmetric_key: bytes, iv: bytes) -> str:
    """Wrap a private key under a symmetric key.

    Args:
        private_key (PrivateKey): The RSA private key to be sealed
        symmetric_key (bytes):    A 32-byte AES key, normally from KeyDerivationService.derive_key()
        iv (bytes):               A 12-byte iv that has never been used with symmetric_key

    Raises:
        WrapError: The key has no private half, or the symmetric key or iv has the wrong size

    Returns:
        str: base64(ciphertext + 16-byte tag) of the PKCS8 encoding of private_key
    """
    try:
      pkcs8 = private_key_to_pkcs8(private_key)
    except KeyFormatError as e:
      raise WrapError(f"Cannot wrap key: {e}") from e
    result = self._seal(pkcs8, symmetric_key, iv)
    logger.debug("Wrapped %d-byte PKCS8 private key", len(pkcs8))
    return result

  def unwrap(self, ciphertext: str, symmetric_key: bytes, iv: bytes) -> PrivateKey:
    """Recover a private key previously sealed with wrap().

    Args:
        ciphertext (str):      The base64 wrapped key, as returned by wrap()
        symmetric_key (bytes): The 32-byte AES key used to wrap
        iv (bytes):            The 12-byte iv used to wrap

    Raises:
        WrapError: The key could not be recovered. The cause is never disclosed.

    Returns:
        PrivateKey: The unwrapped RSA private key
    """
    pkcs8 = self._open(ciphertext, symmetric_key, iv)
    try:
      private_key = private_key_from_pkcs8(pkcs8)
    except KeyFormatError:
      raise WrapError(UNWRAP_FAILED_MESSAGE) from None
    return private_key

  def encrypt_text(self, plaintext: str, symmetric_key: bytes, iv: bytes) -> str:
    """Seal a UTF-8 string under a symmetric key, returning base64(ciphertext + tag)."""
    return self._seal(plaintext.encode('utf-8'), symmetric_key, iv)

  def decrypt_text(self, ciphertext: str, symmetric_key: bytes, iv: bytes) -> str:
    """Open a string sealed with encrypt_text().

    Raises:
        WrapError: The ciphertext cannot be decrypted with the given key and iv, or is not UTF-8
    """
    data = self._open(ciphertext, symmetric_key, iv)
    try:
      plaintext = data.decode('utf-8')
    except UnicodeDecodeError:
      raise WrapError(UNWRAP_FAILED_MESSAGE) from None
    return plaintext

  def decrypt_text_with_password(
        self,
        ciphertext: str,
        password: PasswordMaterial,
        salt: bytes,
        iv: bytes,
        iterations: Optional[int]=None,
      ) -> str:
    """Derive the symmetric key from password and salt, then open a string sealed with encrypt_text().

    Raises:
        KeyDerivationError: The salt or iteration count was rejected
        WrapError: The ciphertext cannot be decrypted with the derived key and iv
    """
    symmetric_key = self._kdf.derive_key(password, salt, iterations=iterations)
    return self.decrypt_text(ciphertext, symmetric_key, iv)
