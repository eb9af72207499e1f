#!/usr/bin/env python3
#
# Copyright (c) 2022 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""The passkey record: the only long-lived, persisted artifact of the passkey scheme"""

from typing import Dict, Optional, Any
from dataclasses import dataclass, field
from datetime import datetime, timezone
import json

from .exceptions import PasskeyRecordError
from .internal_types import Jsonable
from .util import decode_b64
from .constants import RECORD_FIELDS

@dataclass(frozen=True)
class PasskeyRecord:
  """The persisted bundle that lets a user recover their private key from their password alone.

  All four fields are standard base64 strings. The record is serialized as:

      {
        "publicKey": b64encode(spki_der(public_key)),
        "encryptedPrivateKey": b64encode(aes_gcm_encrypt(pkcs8_der(private_key)) + tag),
        "salt": b64encode(salt),
        "iv": b64encode(iv)
      }

  Storage backends may attach additional properties (e.g., "encryptedChecksum"); these are kept in
  `extra` and written back unchanged, but are not interpreted.

  A record is never mutated; a password change produces a new record.
  """

  public_key: str
  """base64 SPKI DER encoding of the RSA public key"""

  encrypted_private_key: str
  """base64 AES-GCM ciphertext (with appended tag) of the PKCS8 DER private key"""

  salt: str
  """base64 PBKDF2 salt"""

  iv: str
  """base64 12-byte AES-GCM iv used to wrap the private key"""

  extra: Dict[str, Jsonable] = field(default_factory=dict, compare=False)
  """Uninterpreted properties carried through from storage"""

  @classmethod
  def from_dict(cls, data: Any) -> 'PasskeyRecord':
    """Build a record from its JSON object form.

    Raises:
        PasskeyRecordError: data is not a dict, or a required property is missing or not a string
    """
    if not isinstance(data, dict):
      raise PasskeyRecordError(f"Passkey record must be a JSON object, got {type(data).__name__}")
    missing = [ name for name in RECORD_FIELDS if not name in data ]
    if len(missing) > 0:
      raise PasskeyRecordError(f"Passkey record is missing required properties: {', '.join(missing)}")
    for name in RECORD_FIELDS:
      if not isinstance(data[name], str):
        raise PasskeyRecordError(f"Passkey record property '{name}' must be a string")
    extra = dict((k, v) for k, v in data.items() if not k in RECORD_FIELDS)
    return cls(
        public_key=data['publicKey'],
        encrypted_private_key=data['encryptedPrivateKey'],
        salt=data['salt'],
        iv=data['iv'],
        extra=extra,
      )

  @classmethod
  def from_json(cls, text: str) -> 'PasskeyRecord':
    """Parse a record from JSON text.

    Raises:
        PasskeyRecordError: text is not valid JSON or not a valid record object
    """
    try:
      data = json.loads(text)
    except ValueError as e:
      raise PasskeyRecordError("Passkey record is not valid JSON") from e
    return cls.from_dict(data)

  def to_dict(self) -> Dict[str, Jsonable]:
    """Return the JSON object form of the record, including any carried extra properties."""
    result: Dict[str, Jsonable] = dict(self.extra)
    result.update(
        publicKey=self.public_key,
        encryptedPrivateKey=self.encrypted_private_key,
        salt=self.salt,
        iv=self.iv,
      )
    return result

  def to_json(self) -> str:
    return json.dumps(self.to_dict(), sort_keys=True, separators=(',', ':'))

  def validate(self) -> None:
    """Check that every required field is a non-empty, well-formed base64 string.

    Raises:
        PasskeyRecordError: A field is empty or is not valid base64
    """
    for name, value in zip(RECORD_FIELDS, (self.public_key, self.encrypted_private_key, self.salt, self.iv)):
      if not isinstance(value, str) or value == '':
        raise PasskeyRecordError(f"Passkey record property '{name}' is empty")
      decode_b64(value, f"passkey record property '{name}'", PasskeyRecordError)

  def is_valid(self) -> bool:
    """True if validate() would succeed."""
    try:
      self.validate()
    except PasskeyRecordError:
      return False
    return True

  def salt_bytes(self) -> bytes:
    return decode_b64(self.salt, 'salt', PasskeyRecordError)

  def iv_bytes(self) -> bytes:
    return decode_b64(self.iv, 'iv', PasskeyRecordError)

  def export(self, now: Optional[datetime]=None) -> Dict[str, Jsonable]:
    """Return the JSON object form of the record stamped with an "exportedAt" time, for backup.

    Args:
        now (Optional[datetime], optional): The export time. If None, the current UTC time is used.
                                            Defaults to None.

    Returns:
        Dict[str, Jsonable]: to_dict() plus "exportedAt" as an ISO-8601 UTC timestamp
    """
    if now is None:
      now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
      now = now.replace(tzinfo=timezone.utc)
    result = self.to_dict()
    result['exportedAt'] = now.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')
    return result
