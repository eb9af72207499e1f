#!/usr/bin/env python3
#
# Copyright (c) 2022 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Constants defined by this package"""

KEY_SIZE_BITS = 256
"""Size of the symmetric AES key derived from a password, in bits"""

KEY_SIZE_BYTES = KEY_SIZE_BITS // 8
"""Size of the symmetric AES key derived from a password, in bytes"""

TAG_SIZE_BYTES = 16
"""Size of the GCM authentication tag appended to each AES ciphertext"""

NONCE_SIZE_BYTES = 12
"""Size of the AES-GCM iv (nonce) stored in a passkey record"""

PBKDF2_COUNT = 65536
"""Default, and minimum, number of PBKDF2 hash iterations from password to symmetric key"""

SALT_SIZE_BYTES = 16
"""Number of random salt bytes generated for a new passkey record"""

MIN_SALT_SIZE_BYTES = 16
"""Smallest salt accepted for key derivation"""

RSA_KEY_SIZE_BITS = 2048
"""Modulus size of generated RSA-OAEP keypairs"""

RSA_PUBLIC_EXPONENT = 65537
"""Public exponent of generated RSA-OAEP keypairs"""

DECRYPTION_FAILED_MESSAGE = "Password mismatch or corrupt data"
"""The only message reported when end-to-end content decryption fails"""

RECORD_FIELDS = ('publicKey', 'encryptedPrivateKey', 'salt', 'iv')
"""JSON property names of the fields every passkey record must carry"""
