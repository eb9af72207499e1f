#
# Copyright (c) 2022 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

import pytest

from passkey_crypto import (
    Passkey,
    PasskeyRecord,
    KeyPair,
    ContentCipher,
    AsymmetricKeyService,
    DecryptionFailed,
    KeyDerivationError,
    PasskeyCryptoError,
    PasskeyRecordError,
    WrapError,
    create_passkey_record,
  )

from .conftest import PASSWORD, WRONG_PASSWORD, SALT, IV, SeededProvider

class TestCreatePasskeyRecord:
  def test_generates_keypair_salt_and_iv(self) -> None:
    record = create_passkey_record(PASSWORD)
    record.validate()
    assert len(record.salt_bytes()) == 16
    assert len(record.iv_bytes()) == 12
    public_key = AsymmetricKeyService().decode_public_key(record.public_key)
    assert public_key.size_in_bits() == 2048
    ciphertext = ContentCipher().encrypt("hello", public_key)
    assert ContentCipher().decrypt_content(record, PASSWORD, ciphertext) == "hello"

  def test_uses_supplied_values(self, key_pair: KeyPair, record: PasskeyRecord) -> None:
    assert record.salt_bytes() == SALT
    assert record.iv_bytes() == IV
    assert record.public_key == AsymmetricKeyService().encode_public_key(key_pair.public_key)

  def test_fresh_salt_and_iv_per_record(self, key_pair: KeyPair) -> None:
    r1 = create_passkey_record(PASSWORD, key_pair=key_pair)
    r2 = create_passkey_record(PASSWORD, key_pair=key_pair)
    assert r1.salt != r2.salt
    assert r1.iv != r2.iv
    assert r1.encrypted_private_key != r2.encrypted_private_key
    assert r1.public_key == r2.public_key

  def test_reproducible_with_seeded_provider(self, key_pair: KeyPair) -> None:
    r1 = create_passkey_record(PASSWORD, key_pair=key_pair, provider=SeededProvider())
    r2 = create_passkey_record(PASSWORD, key_pair=key_pair, provider=SeededProvider())
    assert r1 == r2

  def test_short_salt(self, key_pair: KeyPair) -> None:
    with pytest.raises(KeyDerivationError):
      create_passkey_record(PASSWORD, salt=b'tiny', key_pair=key_pair)

  def test_bad_iv(self, key_pair: KeyPair) -> None:
    with pytest.raises(WrapError):
      create_passkey_record(PASSWORD, iv=b'\x00' * 16, key_pair=key_pair)

  def test_iterations(self, key_pair: KeyPair) -> None:
    record = create_passkey_record(PASSWORD, iterations=70000, key_pair=key_pair)
    passkey = Passkey(record, iterations=70000)
    assert passkey.decrypt(passkey.encrypt("hello"), PASSWORD) == "hello"
    assert not Passkey(record).verify_password(PASSWORD)

class TestPasskey:
  def test_encrypt_decrypt(self, record: PasskeyRecord) -> None:
    passkey = Passkey(record)
    ciphertext = passkey.encrypt("secret note")
    assert passkey.decrypt(ciphertext, PASSWORD) == "secret note"

  def test_wrong_password(self, record: PasskeyRecord) -> None:
    passkey = Passkey(record)
    ciphertext = passkey.encrypt("secret note")
    with pytest.raises(DecryptionFailed):
      passkey.decrypt(ciphertext, WRONG_PASSWORD)

  def test_verify_password(self, record: PasskeyRecord) -> None:
    passkey = Passkey(record)
    assert passkey.verify_password(PASSWORD)
    assert not passkey.verify_password(WRONG_PASSWORD)

  def test_from_json_object(self, record: PasskeyRecord) -> None:
    passkey = Passkey(record.to_dict())
    assert passkey.record == record

  def test_public_key(self, key_pair: KeyPair, record: PasskeyRecord) -> None:
    assert Passkey(record).public_key.n == key_pair.public_key.n

  def test_invalid_record(self, record: PasskeyRecord) -> None:
    with pytest.raises(PasskeyRecordError):
      Passkey(dict(record.to_dict(), salt=""))

  def test_create(self, key_pair: KeyPair) -> None:
    passkey = Passkey.create(PASSWORD, key_pair=key_pair)
    assert passkey.verify_password(PASSWORD)
    assert passkey.decrypt(passkey.encrypt(b"bytes in"), PASSWORD) == "bytes in"

  def test_encrypt_rejects_non_text(self, record: PasskeyRecord) -> None:
    passkey = Passkey(record)
    with pytest.raises(PasskeyCryptoError):
      passkey.encrypt(None)  # type: ignore[arg-type]
    with pytest.raises(PasskeyCryptoError):
      passkey.encrypt(5)  # type: ignore[arg-type]
