#!/usr/bin/env python3
#
# Copyright (c) 2022 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""RSA-OAEP encryption of user content, and end-to-end decryption from a password and a passkey record"""

from typing import Optional, Union, Mapping, Any

from Cryptodome.PublicKey.RSA import RsaKey

import logging

from .exceptions import (
    PasskeyCryptoError,
    KeyFormatError,
    PayloadTooLargeError,
    DecryptionError,
    DecryptionFailed,
  )
from .internal_types import PasswordMaterial, PublicKey, PrivateKey
from .provider import CryptoProvider, default_provider, OAEP_HASH_MODULE
from .key_derivation import KeyDerivationService
from .asymmetric import AsymmetricKeyService
from .envelope import EnvelopeCipher
from .passkey_record import PasskeyRecord
from .util import encode_b64, decode_b64

logger = logging.getLogger(__name__)

class ContentCipher:
  """Encrypts content items under a user's public key and decrypts them with the private key.

  Each content item is a single RSA-OAEP (SHA-256) ciphertext, base64 encoded. A 2048-bit key can
  therefore carry at most 190 bytes of plaintext per item; larger payloads are rejected rather than
  chunked.

  decrypt_content() is the entry point used by callers that hold only a password and a passkey
  record. It reports every failure as the same DecryptionFailed error so that a caller learns nothing
  about which step failed.
  """

  _provider: CryptoProvider
  _kdf: KeyDerivationService
  _keys: AsymmetricKeyService
  _envelope: EnvelopeCipher

  def __init__(
        self,
        provider: Optional[CryptoProvider]=None,
        kdf: Optional[KeyDerivationService]=None,
        keys: Optional[AsymmetricKeyService]=None,
        envelope: Optional[EnvelopeCipher]=None,
      ):
    if provider is None:
      provider = default_provider()
    if kdf is None:
      kdf = KeyDerivationService(provider)
    if keys is None:
      keys = AsymmetricKeyService(provider)
    if envelope is None:
      envelope = EnvelopeCipher(provider, kdf=kdf)
    self._provider = provider
    self._kdf = kdf
    self._keys = keys
    self._envelope = envelope

  @staticmethod
  def max_plaintext_size(public_key: PublicKey) -> int:
    """The largest plaintext, in bytes, that one RSA-OAEP-SHA-256 encryption under public_key can carry."""
    return public_key.size_in_bytes() - 2 * OAEP_HASH_MODULE.digest_size - 2

  def encrypt(self, plaintext: Union[str, bytes], public_key: Union[PublicKey, str]) -> str:
    """Encrypt a content item under a public key.

    Args:
        plaintext (Union[str, bytes]):
                           The content to encrypt. A str is encoded as UTF-8 first.
        public_key (Union[PublicKey, str]):
                           An RSA key, or its base64 SPKI encoding as found in a passkey record.

    Raises:
        PasskeyCryptoError: plaintext is neither str nor bytes
        KeyFormatError: public_key is a malformed base64 SPKI string
        PayloadTooLargeError: plaintext is longer than max_plaintext_size(public_key)

    Returns:
        str: base64(rsa_oaep_encrypt(plaintext))
    """
    if isinstance(public_key, str):
      public_key = self._keys.decode_public_key(public_key)
    elif not isinstance(public_key, RsaKey):
      raise KeyFormatError(f"Expected an RSA public key, got {type(public_key).__name__}")
    if isinstance(plaintext, str):
      bin_plaintext = plaintext.encode('utf-8')
    elif isinstance(plaintext, (bytes, bytearray)):
      bin_plaintext = bytes(plaintext)
    else:
      raise PasskeyCryptoError(f"Plaintext must be str or bytes, got {type(plaintext).__name__}")
    max_size = self.max_plaintext_size(public_key)
    if len(bin_plaintext) > max_size:
      raise PayloadTooLargeError(
          f"Plaintext of {len(bin_plaintext)} bytes exceeds the {max_size}-byte RSA-OAEP limit for this key"
        )
    try:
      ciphertext = self._provider.rsa_oaep_encrypt(public_key, bin_plaintext)
    except (ValueError, TypeError) as e:
      raise PasskeyCryptoError("RSA-OAEP encryption failed") from e
    return encode_b64(ciphertext)

  def encrypt_for_record(self, plaintext: Union[str, bytes], record: PasskeyRecord) -> str:
    """Encrypt a content item under the public key carried in a passkey record."""
    return self.encrypt(plaintext, record.public_key)

  def decrypt(self, ciphertext: str, private_key: PrivateKey) -> bytes:
    """Decrypt a content item with an (unwrapped) private key.

    Raises:
        DecryptionError: The ciphertext is malformed, or fails OAEP decoding under private_key

    Returns:
        bytes: The plaintext passed to encrypt()
    """
    if not isinstance(private_key, RsaKey) or not private_key.has_private():
      raise DecryptionError("An RSA private key is required for decryption")
    bin_ciphertext = decode_b64(ciphertext, 'ciphertext', DecryptionError)
    try:
      plaintext = self._provider.rsa_oaep_decrypt(private_key, bin_ciphertext)
    except (ValueError, TypeError) as e:
      raise DecryptionError("Ciphertext cannot be decrypted with the given key") from e
    return plaintext

  def decrypt_content(
        self,
        record: Union[PasskeyRecord, Mapping[str, Any]],
        password: PasswordMaterial,
        encrypted_content: str,
        iterations: Optional[int]=None,
      ) -> str:
    """Decrypt a content item given only the user's password and passkey record.

    The password and salt derive the symmetric key, which unwraps the private key, which decrypts
    the content; the result is decoded as UTF-8. The record is only read.

    Args:
        record (Union[PasskeyRecord, Mapping[str, Any]]):
                                  The user's passkey record, or its JSON object form
        password (PasswordMaterial):
                                  The user's password
        encrypted_content (str):  A base64 ciphertext produced by encrypt() under the record's public key
        iterations (Optional[int], optional):
                                  PBKDF2 iteration count the record was created with. If None, 65536.
                                  Defaults to None.

    Raises:
        DecryptionFailed: The password is wrong or the record or content is corrupt. No further
                          detail is ever given.

    Returns:
        str: The decrypted text
    """
    try:
      if not isinstance(record, PasskeyRecord):
        record = PasskeyRecord.from_dict(dict(record))
      salt = record.salt_bytes()
      iv = record.iv_bytes()
      symmetric_key = self._kdf.derive_key(password, salt, iterations=iterations)
      private_key = self._envelope.unwrap(record.encrypted_private_key, symmetric_key, iv)
      plaintext = self.decrypt(encrypted_content, private_key).decode('utf-8')
    except (PasskeyCryptoError, ValueError, TypeError):
      logger.debug("Content decryption failed")
      raise DecryptionFailed() from None
    return plaintext
