# Copyright (c) 2014-2022 by Ron Frederick <ronf@timeheart.net> and others.
#
# This program and the accompanying materials are made available under
# the terms of the Eclipse Public License v2.0 which accompanies this
# distribution and is available at:
#
#     http://www.eclipse.org/legal/epl-2.0/
#
# This program may also be made available under the following secondary
# licenses when the conditions for such availability set forth in the
# Eclipse Public License v2.0 are satisfied:
#
#    GNU General Public License, Version 2.0, or any later versions of
#    that license
#
# SPDX-License-Identifier: EPL-2.0 OR GPL-2.0-or-later
#
# Contributors:
#     Ron Frederick - initial implementation, API, and documentation

"""A shim around PyCA for the block ciphers used to protect key files"""

from cryptography.hazmat.decrepit.ciphers.algorithms import TripleDES
from cryptography.hazmat.primitives.ciphers import Cipher
from cryptography.hazmat.primitives.ciphers.algorithms import AES
from cryptography.hazmat.primitives.ciphers.modes import CBC

_cipher_algs = {}
_cipher_params = {}


class BasicCipher:
    """Shim for CBC block ciphers

       A separate encryptor and decryptor context is created on first
       use, so one object can be used in both directions.

    """

    def __init__(self, cipher_name, key, iv):
        cipher, mode = _cipher_algs[cipher_name]

        self._cipher = Cipher(cipher(key), mode(iv))
        self._encryptor = None
        self._decryptor = None

    @property
    def block_size(self):
        """Return the block size of this cipher in bytes"""

        return self._cipher.algorithm.block_size // 8

    def encrypt(self, data):
        """Encrypt a block of data"""

        if not self._encryptor:
            self._encryptor = self._cipher.encryptor()

        return self._encryptor.update(data)

    def decrypt(self, data):
        """Decrypt a block of data"""

        if not self._decryptor:
            self._decryptor = self._cipher.decryptor()

        return self._decryptor.update(data)


def register_cipher(cipher_name, key_size, iv_size, block_size):
    """Register a symmetric cipher"""

    _cipher_params[cipher_name] = (key_size, iv_size, block_size)


def get_cipher_params(cipher_name):
    """Get key size, IV size and block size of a symmetric cipher"""

    return _cipher_params[cipher_name]


# pylint: disable=bad-whitespace

_cipher_alg_list = (
    ('aes128-cbc',   AES,       CBC, 16, 16, 16),
    ('aes192-cbc',   AES,       CBC, 24, 16, 16),
    ('aes256-cbc',   AES,       CBC, 32, 16, 16),
    ('des-cbc',      TripleDES, CBC,  8,  8,  8),
    ('des3-cbc',     TripleDES, CBC, 24,  8,  8)
)

# pylint: enable=bad-whitespace

for _cipher_name, _cipher, _mode, _key_size, _iv_size, _block_size \
        in _cipher_alg_list:
    _cipher_algs[_cipher_name] = (_cipher, _mode)
    register_cipher(_cipher_name, _key_size, _iv_size, _block_size)
