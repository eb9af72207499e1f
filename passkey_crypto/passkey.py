#!/usr/bin/env python3
#
# Copyright (c) 2022 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Enrollment of new passkey records, and a convenience wrapper around an existing record"""

from typing import Optional, Union

import logging

from .exceptions import PasskeyCryptoError
from .internal_types import PasswordMaterial, PublicKey
from .provider import CryptoProvider, default_provider
from .key_derivation import KeyDerivationService
from .asymmetric import AsymmetricKeyService, KeyPair
from .envelope import EnvelopeCipher
from .content_cipher import ContentCipher
from .passkey_record import PasskeyRecord
from .util import encode_b64
from .constants import SALT_SIZE_BYTES

logger = logging.getLogger(__name__)

def create_passkey_record(
      password: PasswordMaterial,
      iterations: Optional[int]=None,
      salt: Optional[bytes]=None,
      iv: Optional[bytes]=None,
      key_pair: Optional[KeyPair]=None,
      provider: Optional[CryptoProvider]=None,
    ) -> PasskeyRecord:
  """Create a passkey record for a user who is setting a password.

  Args:
      password (PasswordMaterial):
                            The user's new password.
      iterations (Optional[int], optional):
                            PBKDF2 iteration count. The same count must be used to decrypt later.
                            If None, 65536 is used. Defaults to None.
      salt (Optional[bytes], optional):
                            A specific salt of at least 16 bytes. If None, 16 random bytes are generated.
                            Defaults to None.
      iv (Optional[bytes], optional):
                            A specific 12-byte iv. It must not have been used before with the same password
                            and salt. If None, a fresh random iv is generated. Defaults to None.
      key_pair (Optional[KeyPair], optional):
                            An existing keypair to wrap. If None, a new keypair is generated. Defaults to None.
      provider (Optional[CryptoProvider], optional):
                            Source of randomness and primitives. If None, the shared pycryptodomex provider
                            is used. Defaults to None.

  Raises:
      KeyDerivationError: The salt or iteration count was rejected
      WrapError: The iv has the wrong size

  Returns:
      PasskeyRecord: The new record. It is the caller's responsibility to persist it.
  """
  if provider is None:
    provider = default_provider()
  kdf = KeyDerivationService(provider)
  keys = AsymmetricKeyService(provider)
  envelope = EnvelopeCipher(provider, kdf=kdf)
  if salt is None:
    salt = provider.secure_random_bytes(SALT_SIZE_BYTES)
  if iv is None:
    iv = envelope.generate_iv()
  symmetric_key = kdf.derive_key(password, salt, iterations=iterations)
  if key_pair is None:
    key_pair = keys.generate_key_pair()
  encrypted_private_key = envelope.wrap(key_pair.private_key, symmetric_key, iv)
  record = PasskeyRecord(
      public_key=keys.encode_public_key(key_pair.public_key),
      encrypted_private_key=encrypted_private_key,
      salt=encode_b64(salt),
      iv=encode_b64(iv),
    )
  logger.info("Created passkey record")
  return record

class Passkey:
  """A user's passkey record together with the ciphers needed to use it.

  Anyone holding the record can encrypt content for its owner; decryption requires the owner's
  password. Decryption failures are reported only as DecryptionFailed.
  """

  _record: PasskeyRecord
  _iterations: Optional[int]
  _keys: AsymmetricKeyService
  _kdf: KeyDerivationService
  _envelope: EnvelopeCipher
  _cipher: ContentCipher
  _public_key: Optional[PublicKey] = None

  def __init__(
        self,
        record: Union[PasskeyRecord, dict],
        iterations: Optional[int]=None,
        provider: Optional[CryptoProvider]=None,
      ):
    """Wrap an existing passkey record.

    Args:
        record (Union[PasskeyRecord, dict]):
                              The record, or its JSON object form.
        iterations (Optional[int], optional):
                              PBKDF2 iteration count the record was created with. If None, 65536.
                              Defaults to None.
        provider (Optional[CryptoProvider], optional):
                              Source of randomness and primitives. Defaults to None.

    Raises:
        PasskeyRecordError: The record is missing fields or carries malformed base64
    """
    if not isinstance(record, PasskeyRecord):
      record = PasskeyRecord.from_dict(record)
    record.validate()
    if provider is None:
      provider = default_provider()
    self._record = record
    self._iterations = iterations
    self._kdf = KeyDerivationService(provider)
    self._keys = AsymmetricKeyService(provider)
    self._envelope = EnvelopeCipher(provider, kdf=self._kdf)
    self._cipher = ContentCipher(provider, kdf=self._kdf, keys=self._keys, envelope=self._envelope)

  @classmethod
  def create(
        cls,
        password: PasswordMaterial,
        iterations: Optional[int]=None,
        salt: Optional[bytes]=None,
        iv: Optional[bytes]=None,
        key_pair: Optional[KeyPair]=None,
        provider: Optional[CryptoProvider]=None,
      ) -> 'Passkey':
    """Enroll a new passkey; see create_passkey_record()."""
    record = create_passkey_record(
        password,
        iterations=iterations,
        salt=salt,
        iv=iv,
        key_pair=key_pair,
        provider=provider,
      )
    return cls(record, iterations=iterations, provider=provider)

  @property
  def record(self) -> PasskeyRecord:
    """The passkey record, to be persisted by the caller"""
    return self._record

  @property
  def public_key(self) -> PublicKey:
    """The RSA public key decoded from the record"""
    if self._public_key is None:
      self._public_key = self._keys.decode_public_key(self._record.public_key)
    return self._public_key

  def encrypt(self, plaintext: Union[str, bytes]) -> str:
    """Encrypt a content item (at most 190 bytes) for the owner of this passkey."""
    return self._cipher.encrypt(plaintext, self.public_key)

  def decrypt(self, ciphertext: str, password: PasswordMaterial) -> str:
    """Decrypt a content item with the owner's password.

    Raises:
        DecryptionFailed: Password mismatch or corrupt data
    """
    return self._cipher.decrypt_content(self._record, password, ciphertext, iterations=self._iterations)

  def verify_password(self, password: PasswordMaterial) -> bool:
    """True if password unwraps this passkey's private key."""
    record = self._record
    try:
      symmetric_key = self._kdf.derive_key(password, record.salt_bytes(), iterations=self._iterations)
      self._envelope.unwrap(record.encrypted_private_key, symmetric_key, record.iv_bytes())
    except PasskeyCryptoError:
      return False
    return True
