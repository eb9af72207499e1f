#
# Copyright (c) 2022 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Shared fixtures, and a fixed-randomness CryptoProvider"""

import pytest
from Cryptodome.Hash import SHA256

from passkey_crypto import (
    AsymmetricKeyService,
    CryptodomeProvider,
    KeyPair,
    PasskeyRecord,
    create_passkey_record,
  )

PASSWORD = "correct-horse"
WRONG_PASSWORD = "wrong-pass"
SALT = bytes(range(16))
IV = bytes(range(100, 112))

class SeededProvider(CryptodomeProvider):
  """A CryptodomeProvider whose "random" bytes are a SHA-256 counter stream over a seed.

  Two instances built from the same seed make identical random choices, which makes key generation,
  salts, ivs and OAEP padding reproducible.
  """

  _seed: bytes
  _counter: int

  def __init__(self, seed: bytes=b'passkey-crypto-tests'):
    self._seed = seed
    self._counter = 0

  def secure_random_bytes(self, n_bytes: int) -> bytes:
    result = b''
    while len(result) < n_bytes:
      result += SHA256.new(self._seed + self._counter.to_bytes(8, 'big')).digest()
      self._counter += 1
    return result[:n_bytes]

@pytest.fixture
def seeded_provider() -> SeededProvider:
  return SeededProvider()

@pytest.fixture(scope='session')
def key_pair() -> KeyPair:
  return AsymmetricKeyService().generate_key_pair()

@pytest.fixture(scope='session')
def other_key_pair() -> KeyPair:
  return AsymmetricKeyService().generate_key_pair()

@pytest.fixture(scope='session')
def record(key_pair: KeyPair) -> PasskeyRecord:
  return create_passkey_record(PASSWORD, salt=SALT, iv=IV, key_pair=key_pair)
