#
# Copyright (c) 2022 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

from base64 import b64decode, b64encode

import pytest
from Cryptodome.Cipher import AES

from passkey_crypto import (
    EnvelopeCipher,
    ContentCipher,
    KeyDerivationService,
    KeyPair,
    WrapError,
    KeyDerivationError,
  )

from .conftest import PASSWORD, WRONG_PASSWORD, SALT, IV, SeededProvider

@pytest.fixture(scope='module')
def symmetric_key() -> bytes:
  return KeyDerivationService().derive_key(PASSWORD, SALT)

@pytest.fixture
def envelope() -> EnvelopeCipher:
  return EnvelopeCipher()

def flip_bit(b64_text: str, index: int=0) -> str:
  data = bytearray(b64decode(b64_text))
  data[index] ^= 0x01
  return b64encode(bytes(data)).decode('utf-8')

class TestWrap:
  def test_round_trip(self, envelope: EnvelopeCipher, key_pair: KeyPair, symmetric_key: bytes) -> None:
    wrapped = envelope.wrap(key_pair.private_key, symmetric_key, IV)
    unwrapped = envelope.unwrap(wrapped, symmetric_key, IV)
    assert unwrapped.n == key_pair.private_key.n
    assert unwrapped.d == key_pair.private_key.d

  def test_unwrapped_key_decrypts_the_same(self, envelope: EnvelopeCipher, key_pair: KeyPair, symmetric_key: bytes) -> None:
    cipher = ContentCipher()
    ciphertext = cipher.encrypt(b"same result", key_pair.public_key)
    unwrapped = envelope.unwrap(envelope.wrap(key_pair.private_key, symmetric_key, IV), symmetric_key, IV)
    assert cipher.decrypt(ciphertext, unwrapped) == cipher.decrypt(ciphertext, key_pair.private_key)

  def test_deterministic(self, envelope: EnvelopeCipher, key_pair: KeyPair, symmetric_key: bytes) -> None:
    assert envelope.wrap(key_pair.private_key, symmetric_key, IV) == envelope.wrap(key_pair.private_key, symmetric_key, IV)

  def test_different_iv_different_ciphertext(self, envelope: EnvelopeCipher, key_pair: KeyPair, symmetric_key: bytes) -> None:
    other_iv = bytes(12)
    assert envelope.wrap(key_pair.private_key, symmetric_key, IV) != envelope.wrap(key_pair.private_key, symmetric_key, other_iv)

  def test_format_is_aes_gcm_of_pkcs8_with_tag(self, envelope: EnvelopeCipher, key_pair: KeyPair, symmetric_key: bytes) -> None:
    data = b64decode(envelope.wrap(key_pair.private_key, symmetric_key, IV))
    cipher = AES.new(symmetric_key, AES.MODE_GCM, nonce=IV, mac_len=16)
    pkcs8 = cipher.decrypt_and_verify(data[:-16], data[-16:])
    assert pkcs8 == key_pair.private_key.export_key(format='DER', pkcs=8)

  def test_public_key_rejected(self, envelope: EnvelopeCipher, key_pair: KeyPair, symmetric_key: bytes) -> None:
    with pytest.raises(WrapError):
      envelope.wrap(key_pair.public_key, symmetric_key, IV)

  def test_wrong_key_size(self, envelope: EnvelopeCipher, key_pair: KeyPair) -> None:
    with pytest.raises(WrapError):
      envelope.wrap(key_pair.private_key, b'k' * 16, IV)

  def test_wrong_iv_size(self, envelope: EnvelopeCipher, key_pair: KeyPair, symmetric_key: bytes) -> None:
    with pytest.raises(WrapError):
      envelope.wrap(key_pair.private_key, symmetric_key, b'\x00' * 16)

class TestUnwrapFailures:
  @pytest.fixture
  def wrapped(self, envelope: EnvelopeCipher, key_pair: KeyPair, symmetric_key: bytes) -> str:
    return envelope.wrap(key_pair.private_key, symmetric_key, IV)

  def _message(self, envelope: EnvelopeCipher, ciphertext: str, symmetric_key: bytes, iv: bytes) -> str:
    with pytest.raises(WrapError) as excinfo:
      envelope.unwrap(ciphertext, symmetric_key, iv)
    assert excinfo.value.__cause__ is None
    return str(excinfo.value)

  def test_failures_are_indistinguishable(self, envelope: EnvelopeCipher, wrapped: str, symmetric_key: bytes) -> None:
    wrong_key = KeyDerivationService().derive_key(WRONG_PASSWORD, SALT)
    messages = set([
        self._message(envelope, wrapped, wrong_key, IV),
        self._message(envelope, wrapped, symmetric_key, bytes(12)),
        self._message(envelope, flip_bit(wrapped, 10), symmetric_key, IV),
        self._message(envelope, flip_bit(wrapped, -1), symmetric_key, IV),
        self._message(envelope, "%%%", symmetric_key, IV),
        self._message(envelope, b64encode(b'short').decode('utf-8'), symmetric_key, IV),
        self._message(envelope, wrapped, symmetric_key, b'\x00' * 8),
      ])
    assert len(messages) == 1

  def test_authentic_but_not_a_key(self, envelope: EnvelopeCipher, symmetric_key: bytes) -> None:
    sealed = envelope.encrypt_text("definitely not a PKCS8 key", symmetric_key, IV)
    with pytest.raises(WrapError):
      envelope.unwrap(sealed, symmetric_key, IV)

class TestText:
  def test_round_trip(self, envelope: EnvelopeCipher, symmetric_key: bytes) -> None:
    sealed = envelope.encrypt_text("héllo wörld", symmetric_key, IV)
    assert envelope.decrypt_text(sealed, symmetric_key, IV) == "héllo wörld"

  def test_with_password(self, envelope: EnvelopeCipher, symmetric_key: bytes) -> None:
    sealed = envelope.encrypt_text("note body", symmetric_key, IV)
    assert envelope.decrypt_text_with_password(sealed, PASSWORD, SALT, IV) == "note body"

  def test_with_wrong_password(self, envelope: EnvelopeCipher, symmetric_key: bytes) -> None:
    sealed = envelope.encrypt_text("note body", symmetric_key, IV)
    with pytest.raises(WrapError):
      envelope.decrypt_text_with_password(sealed, WRONG_PASSWORD, SALT, IV)

  def test_with_short_salt(self, envelope: EnvelopeCipher, symmetric_key: bytes) -> None:
    sealed = envelope.encrypt_text("note body", symmetric_key, IV)
    with pytest.raises(KeyDerivationError):
      envelope.decrypt_text_with_password(sealed, PASSWORD, b'salt', IV)

class TestGenerateIv:
  def test_size(self, envelope: EnvelopeCipher) -> None:
    assert len(envelope.generate_iv()) == 12

  def test_fresh(self, envelope: EnvelopeCipher) -> None:
    assert envelope.generate_iv() != envelope.generate_iv()

  def test_uses_injected_provider(self) -> None:
    assert EnvelopeCipher(SeededProvider(b'x')).generate_iv() == EnvelopeCipher(SeededProvider(b'x')).generate_iv()
