#!/usr/bin/env python3
#
# Copyright (c) 2022 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Generation and SPKI/PKCS8 serialization of RSA-OAEP keypairs"""

from typing import NamedTuple, Optional

from Cryptodome.PublicKey import RSA
from Cryptodome.PublicKey.RSA import RsaKey
from Cryptodome.IO import PKCS8

import logging

from .exceptions import KeyFormatError
from .internal_types import PublicKey, PrivateKey
from .provider import CryptoProvider, default_provider
from .util import encode_b64, decode_b64
from .constants import RSA_KEY_SIZE_BITS, RSA_PUBLIC_EXPONENT

logger = logging.getLogger(__name__)

RSA_ENCRYPTION_OID = '1.2.840.113549.1.1.1'
"""AlgorithmIdentifier OID (rsaEncryption) that SPKI and PKCS8 RSA keys must carry"""

class KeyPair(NamedTuple):
  """An RSA-OAEP keypair. The public half may be shared freely; the private half must stay unwrapped
     only for the duration of a decrypt operation."""
  public_key: PublicKey
  private_key: PrivateKey

def _import_key(der: bytes, what: str) -> RsaKey:
  try:
    key = RSA.import_key(der)
  except (ValueError, IndexError, TypeError) as e:
    raise KeyFormatError(f"Structurally invalid {what}") from e
  return key

def public_key_to_spki(key: RsaKey) -> bytes:
  """Return the SubjectPublicKeyInfo DER encoding of an RSA key's public half."""
  if not isinstance(key, RsaKey):
    raise KeyFormatError(f"Expected an RSA key, got {type(key).__name__}")
  return key.public_key().export_key(format='DER')

def private_key_to_pkcs8(key: RsaKey) -> bytes:
  """Return the unencrypted PKCS8 DER encoding of an RSA private key."""
  if not isinstance(key, RsaKey):
    raise KeyFormatError(f"Expected an RSA key, got {type(key).__name__}")
  if not key.has_private():
    raise KeyFormatError("RSA key has no private half")
  return key.export_key(format='DER', pkcs=8)

def public_key_from_spki(der: bytes) -> RsaKey:
  """Load an RSA public key from SubjectPublicKeyInfo DER bytes.

  RSA.import_key also accepts PEM, OpenSSH and PKCS#1 encodings; those are rejected here by
  requiring the key to re-export to exactly the bytes given.
  """
  key = _import_key(der, "SPKI public key")
  if key.has_private():
    raise KeyFormatError("Expected an SPKI public key, got a private key")
  if key.export_key(format='DER') != bytes(der):
    raise KeyFormatError("Public key is not RSA SubjectPublicKeyInfo DER")
  return key

def private_key_from_pkcs8(der: bytes) -> RsaKey:
  """Load an RSA private key from PKCS8 DER bytes."""
  try:
    oid, _, _ = PKCS8.unwrap(der)
  except (ValueError, IndexError, TypeError) as e:
    raise KeyFormatError("Structurally invalid PKCS8 private key") from e
  if oid != RSA_ENCRYPTION_OID:
    raise KeyFormatError(f"PKCS8 private key is not an RSA key (algorithm {oid})")
  key = _import_key(der, "PKCS8 private key")
  if not key.has_private():
    raise KeyFormatError("Expected a PKCS8 private key, got a public key")
  return key

class AsymmetricKeyService:
  """Generates RSA-OAEP keypairs (2048-bit modulus, exponent 65537) and converts their halves
  to and from base64 SPKI (public) and base64 PKCS8 (private) text."""

  RSA_KEY_SIZE_BITS = RSA_KEY_SIZE_BITS
  """Modulus size of generated keys"""

  RSA_PUBLIC_EXPONENT = RSA_PUBLIC_EXPONENT
  """Public exponent of generated keys"""

  _provider: CryptoProvider

  def __init__(self, provider: Optional[CryptoProvider]=None):
    if provider is None:
      provider = default_provider()
    self._provider = provider

  def generate_key_pair(self) -> KeyPair:
    """Generate a fresh, statistically independent RSA-OAEP keypair.

    Returns:
        KeyPair: The new keypair
    """
    private_key = self._provider.rsa_generate_keypair(self.RSA_KEY_SIZE_BITS, self.RSA_PUBLIC_EXPONENT)
    logger.debug("Generated %d-bit RSA keypair", private_key.size_in_bits())
    return KeyPair(public_key=private_key.public_key(), private_key=private_key)

  def encode_public_key(self, key: PublicKey) -> str:
    """Encode the public half of an RSA key as base64 SPKI DER."""
    return encode_b64(public_key_to_spki(key))

  def decode_public_key(self, text: str) -> PublicKey:
    """Decode a base64 SPKI public key.

    Raises:
        KeyFormatError: text is not valid base64 or not an RSA public key
    """
    der = decode_b64(text, 'public key', KeyFormatError)
    return public_key_from_spki(der)

  def encode_private_key(self, key: PrivateKey) -> str:
    """Encode an RSA private key as base64 PKCS8 DER."""
    return encode_b64(private_key_to_pkcs8(key))

  def decode_private_key(self, text: str) -> PrivateKey:
    """Decode a base64 PKCS8 private key.

    Raises:
        KeyFormatError: text is not valid base64 or not an RSA private key
    """
    der = decode_b64(text, 'private key', KeyFormatError)
    return private_key_from_pkcs8(der)
