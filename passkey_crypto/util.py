#!/usr/bin/env python3
#
# Copyright (c) 2022 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Base64 and password helpers shared by the services"""

from typing import Type
from base64 import b64encode, b64decode
import binascii

from .exceptions import PasskeyCryptoError
from .internal_types import PasswordMaterial

def encode_b64(data: bytes) -> str:
  """Encode binary data as standard, padded base64 text.

  Args:
      data (bytes): The binary value to encode

  Returns:
      str: The base64 representation of data
  """
  return b64encode(data).decode('utf-8')

def decode_b64(
      text: str,
      what: str='value',
      error_class: Type[PasskeyCryptoError]=PasskeyCryptoError
    ) -> bytes:
  """Strictly decode standard, padded base64 text.

  URL-safe characters, missing padding and embedded whitespace are all rejected.

  Args:
      text (str):     The base64 text to decode
      what (str, optional):
                      A short description of the value, used in error messages. Defaults to 'value'.
      error_class (Type[PasskeyCryptoError], optional):
                      The exception class raised on malformed input. Defaults to PasskeyCryptoError.

  Raises:
      error_class: text is not a string, or is not valid base64

  Returns:
      bytes: The decoded binary value
  """
  if not isinstance(text, str):
    raise error_class(f"Expected a base64 string for {what}, got {type(text).__name__}")
  try:
    result = b64decode(text, validate=True)
  except (binascii.Error, ValueError) as e:
    raise error_class(f"Badly formed base64 {what}") from e
  return result

def password_bytes(password: PasswordMaterial) -> bytes:
  """Return the raw bytes of a password; str passwords are UTF-8 encoded."""
  if isinstance(password, str):
    return password.encode('utf-8')
  if isinstance(password, (bytes, bytearray)):
    return bytes(password)
  raise TypeError(f"Password must be str or bytes, got {type(password).__name__}")
