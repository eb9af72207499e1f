#
# Copyright (c) 2022 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Exceptions defined by this package"""

from .constants import DECRYPTION_FAILED_MESSAGE

class PasskeyCryptoError(Exception):
  """Base class for all error exceptions defined by this package."""
  #pass

class PasskeyCryptoNoPasswordError(PasskeyCryptoError):
  """Exception indicating failure because a password was not provided."""
  #pass

class PasskeyRecordError(PasskeyCryptoError):
  """Exception indicating a passkey record is missing fields or carries malformed values."""
  #pass

class KeyDerivationError(PasskeyCryptoError):
  """Exception indicating that key derivation parameters were rejected. Never means "wrong password"."""
  #pass

class KeyFormatError(PasskeyCryptoError):
  """Exception indicating malformed base64, SPKI or PKCS8 key material."""
  #pass

class WrapError(PasskeyCryptoError):
  """Exception indicating a private key could not be wrapped or unwrapped.

  Unwrap failures are deliberately opaque: a wrong password, a wrong iv and tampered
  ciphertext all produce the same exception and message.
  """
  #pass

class PayloadTooLargeError(PasskeyCryptoError):
  """Exception indicating that a plaintext exceeds the RSA-OAEP capacity of the key."""
  #pass

class DecryptionError(PasskeyCryptoError):
  """Exception indicating RSA-OAEP decryption failed."""
  #pass

class DecryptionFailed(PasskeyCryptoError):
  """The single error reported by end-to-end content decryption.

  Intentionally carries no information about which step failed.
  """
  def __init__(self, msg: str=DECRYPTION_FAILED_MESSAGE):
    super().__init__(msg)
