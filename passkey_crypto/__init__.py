# Copyright (c) 2022 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Package passkey_crypto provides a command-line tool as well as a runtime API for passkey envelope encryption:
an RSA-OAEP keypair whose private half is sealed under a password-derived AES-GCM key, so that content
encrypted under the public key can later be decrypted from the user's password and passkey record alone.
"""

from .version import __version__

from .constants import (
    KEY_SIZE_BITS,
    KEY_SIZE_BYTES,
    NONCE_SIZE_BYTES,
    TAG_SIZE_BYTES,
    PBKDF2_COUNT,
    SALT_SIZE_BYTES,
    MIN_SALT_SIZE_BYTES,
    RSA_KEY_SIZE_BITS,
    RSA_PUBLIC_EXPONENT,
    DECRYPTION_FAILED_MESSAGE,
  )

from .provider import CryptoProvider, CryptodomeProvider, default_provider
from .key_derivation import KeyDerivationService
from .asymmetric import AsymmetricKeyService, KeyPair
from .envelope import EnvelopeCipher
from .content_cipher import ContentCipher
from .passkey_record import PasskeyRecord
from .passkey import Passkey, create_passkey_record
from .internal_types import Jsonable, PasswordMaterial
from .exceptions import (
    PasskeyCryptoError,
    PasskeyCryptoNoPasswordError,
    PasskeyRecordError,
    KeyDerivationError,
    KeyFormatError,
    WrapError,
    PayloadTooLargeError,
    DecryptionError,
    DecryptionFailed,
  )
