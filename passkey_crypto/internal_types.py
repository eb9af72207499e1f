#
# Copyright (c) 2022 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Type hints used internally by this package"""

from typing import Dict, List, Union

from Cryptodome.PublicKey.RSA import RsaKey

Jsonable = Union[str, int, float, bool, None, Dict[str, 'Jsonable'], List['Jsonable']]
# A type hint for a simple JSON-serializable value

PasswordMaterial = Union[str, bytes]
# A user-supplied password; str values are encoded as UTF-8

PublicKey = RsaKey
# An RSA key used for OAEP encryption

PrivateKey = RsaKey
# An RSA key with its private half, used for OAEP decryption
