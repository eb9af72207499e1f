#!/usr/bin/env python3
#
# Copyright (c) 2022 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Cryptographic primitives, supplied to the services through an injectable provider"""

from typing import Optional, cast
from types import ModuleType
from abc import ABC, abstractmethod

from Cryptodome.Protocol.KDF import PBKDF2
from Cryptodome.Hash import SHA256
from Cryptodome.Cipher import AES, PKCS1_OAEP
from Cryptodome.Cipher._mode_gcm import GcmMode
from Cryptodome.PublicKey import RSA
from Cryptodome.PublicKey.RSA import RsaKey
from Cryptodome.Random import get_random_bytes

from .constants import (
    KEY_SIZE_BYTES,
    TAG_SIZE_BYTES,
    RSA_KEY_SIZE_BITS,
    RSA_PUBLIC_EXPONENT,
  )

PBKDF2_HASH_MODULE: ModuleType = SHA256
"""Type of hash used to derive the AES key from a password"""

OAEP_HASH_MODULE: ModuleType = SHA256
"""Type of hash used for RSA-OAEP padding and its MGF1 mask"""

class CryptoProvider(ABC):
  """The raw cryptographic primitives used by the passkey services.

  Implementations perform no parameter policy checks of their own and raise whatever their
  underlying library raises; the services validate inputs and translate failures into
  this package's exceptions. Implementations must be safe to share between threads.
  """

  @abstractmethod
  def secure_random_bytes(self, n_bytes: int) -> bytes:
    """Return n_bytes bytes from a cryptographically secure random source."""
    raise NotImplementedError()

  @abstractmethod
  def pbkdf2(self, password: bytes, salt: bytes, iterations: int, key_size_bytes: int=KEY_SIZE_BYTES) -> bytes:
    """PBKDF2-HMAC-SHA-256 of password and salt."""
    raise NotImplementedError()

  @abstractmethod
  def aes_gcm_encrypt(self, key: bytes, iv: bytes, plaintext: bytes) -> bytes:
    """AES-GCM encryption, returning ciphertext with the 16-byte tag appended."""
    raise NotImplementedError()

  @abstractmethod
  def aes_gcm_decrypt(self, key: bytes, iv: bytes, ciphertext_and_tag: bytes) -> bytes:
    """AES-GCM decryption of ciphertext with an appended tag. Raises if the tag does not verify."""
    raise NotImplementedError()

  @abstractmethod
  def rsa_oaep_encrypt(self, public_key: RsaKey, plaintext: bytes) -> bytes:
    """RSA-OAEP (SHA-256) encryption."""
    raise NotImplementedError()

  @abstractmethod
  def rsa_oaep_decrypt(self, private_key: RsaKey, ciphertext: bytes) -> bytes:
    """RSA-OAEP (SHA-256) decryption."""
    raise NotImplementedError()

  @abstractmethod
  def rsa_generate_keypair(self, key_size_bits: int=RSA_KEY_SIZE_BITS, public_exponent: int=RSA_PUBLIC_EXPONENT) -> RsaKey:
    """Generate a fresh RSA private key (which also carries its public half)."""
    raise NotImplementedError()

class CryptodomeProvider(CryptoProvider):
  """CryptoProvider implemented with pycryptodomex.

  All randomness, including OAEP padding seeds and RSA prime generation, is drawn from
  self.secure_random_bytes(), so a subclass that overrides it controls every random
  choice the provider makes.
  """

  def secure_random_bytes(self, n_bytes: int) -> bytes:
    return get_random_bytes(n_bytes)

  def pbkdf2(self, password: bytes, salt: bytes, iterations: int, key_size_bytes: int=KEY_SIZE_BYTES) -> bytes:
    key = PBKDF2(password, salt, dkLen=key_size_bytes, count=iterations, hmac_hash_module=PBKDF2_HASH_MODULE)
    return key

  def aes_gcm_encrypt(self, key: bytes, iv: bytes, plaintext: bytes) -> bytes:
    cipher = cast(GcmMode, AES.new(key, AES.MODE_GCM, nonce=iv, mac_len=TAG_SIZE_BYTES))
    ciphertext_data, tag = cipher.encrypt_and_digest(plaintext)
    assert len(tag) == TAG_SIZE_BYTES
    return ciphertext_data + tag

  def aes_gcm_decrypt(self, key: bytes, iv: bytes, ciphertext_and_tag: bytes) -> bytes:
    if len(ciphertext_and_tag) < TAG_SIZE_BYTES:
      raise ValueError(f"Ciphertext not long enough to include {TAG_SIZE_BYTES}-byte GCM tag")
    ciphertext_data = ciphertext_and_tag[:-TAG_SIZE_BYTES]
    ciphertext_tag = ciphertext_and_tag[-TAG_SIZE_BYTES:]
    cipher = cast(GcmMode, AES.new(key, AES.MODE_GCM, nonce=iv, mac_len=TAG_SIZE_BYTES))
    return cipher.decrypt_and_verify(ciphertext_data, ciphertext_tag)

  def _oaep(self, key: RsaKey):
    return PKCS1_OAEP.new(key, hashAlgo=OAEP_HASH_MODULE, randfunc=self.secure_random_bytes)

  def rsa_oaep_encrypt(self, public_key: RsaKey, plaintext: bytes) -> bytes:
    return self._oaep(public_key).encrypt(plaintext)

  def rsa_oaep_decrypt(self, private_key: RsaKey, ciphertext: bytes) -> bytes:
    return self._oaep(private_key).decrypt(ciphertext)

  def rsa_generate_keypair(self, key_size_bits: int=RSA_KEY_SIZE_BITS, public_exponent: int=RSA_PUBLIC_EXPONENT) -> RsaKey:
    return RSA.generate(key_size_bits, randfunc=self.secure_random_bytes, e=public_exponent)

_default_provider: Optional[CryptoProvider] = None

def default_provider() -> CryptoProvider:
  """Return the shared CryptodomeProvider used when no provider is injected."""
  global _default_provider
  if _default_provider is None:
    _default_provider = CryptodomeProvider()
  return _default_provider
