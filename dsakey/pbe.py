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

"""Passphrase based encryption of private key data

   Two schemes are supported. PEM encryption (RFC 1423) protects a
   traditional private key inside its PEM container, with the cipher
   and IV carried in the "DEK-Info" header. PKCS#8 encryption wraps
   the key in an EncryptedPrivateKeyInfo structure, using either the
   PKCS#5 v1.5 (PBES1) or v2.0 (PBES2) scheme.

"""

import os

from hashlib import md5, sha1

from .asn1 import ASN1DecodeError, ObjectIdentifier, der_decode
from .crypto import BasicCipher, get_cipher_params, pbkdf2_hmac


# pylint: disable=bad-whitespace

_ES1_MD5_DES    = ObjectIdentifier('1.2.840.113549.1.5.3')
_ES1_SHA1_DES   = ObjectIdentifier('1.2.840.113549.1.5.10')

_ES2            = ObjectIdentifier('1.2.840.113549.1.5.13')

_ES2_DES3       = ObjectIdentifier('1.2.840.113549.3.7')
_ES2_DES        = ObjectIdentifier('1.3.14.3.2.7')
_ES2_AES128     = ObjectIdentifier('2.16.840.1.101.3.4.1.2')
_ES2_AES192     = ObjectIdentifier('2.16.840.1.101.3.4.1.22')
_ES2_AES256     = ObjectIdentifier('2.16.840.1.101.3.4.1.42')

_ES2_PBKDF2     = ObjectIdentifier('1.2.840.113549.1.5.12')

_ES2_SHA1       = ObjectIdentifier('1.2.840.113549.2.7')
_ES2_SHA224     = ObjectIdentifier('1.2.840.113549.2.8')
_ES2_SHA256     = ObjectIdentifier('1.2.840.113549.2.9')
_ES2_SHA384     = ObjectIdentifier('1.2.840.113549.2.10')
_ES2_SHA512     = ObjectIdentifier('1.2.840.113549.2.11')
_ES2_SHA512_224 = ObjectIdentifier('1.2.840.113549.2.12')
_ES2_SHA512_256 = ObjectIdentifier('1.2.840.113549.2.13')

# pylint: enable=bad-whitespace

# Largest iteration count accepted when deriving a decryption key
_MAX_ITERATIONS = 1000000

_pem_ciphers = {}
_pem_cipher_names = {}
_pbes1_ciphers = {}
_pbes2_ciphers = {}
_pbes2_prfs = {}


class KeyEncryptionError(ValueError):
    """Key encryption error

       This exception is raised by key encryption functions when the
       requested cipher is unknown, and by key decryption functions
       when the data provided is not a valid encrypted private key.

    """


def _to_bytes(passphrase):
    """Convert a passphrase to bytes"""

    if isinstance(passphrase, str):
        passphrase = passphrase.encode('utf-8')

    return bytes(passphrase)


class _RFC1423Pad:
    """RFC 1423 padding functions

       This class implements RFC 1423 padding for encryption and
       decryption of data by block ciphers. On encryption, the data is
       padded by between 1 and the cipher's block size number of bytes,
       with the padding value being equal to the length of the padding.

    """

    def __init__(self, cipher):
        self._cipher = cipher
        self._block_size = cipher.block_size

    def encrypt(self, data):
        """Pad data before encrypting it"""

        pad = self._block_size - (len(data) % self._block_size)
        data += pad * bytes((pad,))
        return self._cipher.encrypt(data)

    def decrypt(self, data):
        """Remove padding from data after decrypting it"""

        if not data or len(data) % self._block_size:
            raise KeyEncryptionError('Unable to decrypt key')

        data = self._cipher.decrypt(data)

        pad = data[-1]
        if (1 <= pad <= self._block_size and
                data[-pad:] == pad * bytes((pad,))):
            return data[:-pad]

        raise KeyEncryptionError('Unable to decrypt key')


def _pbkdf1(hash_alg, passphrase, salt, count, key_size):
    """PKCS#5 v1.5 key derivation function for password-based encryption

       This function implements the PKCS#5 v1.5 algorithm for deriving
       an encryption key from a passphrase and salt.

       The standard PBKDF1 function cannot generate more key bytes than
       the hash digest size, but OpenSSL's EVP_BytesToKey, used for PEM
       encryption, extends it by hashing the previous block followed by
       the passphrase and salt again. Support for this is implemented
       here.

    """

    key = b''
    block = b''

    while len(key) < key_size:
        block = block + passphrase + salt
        for _ in range(count):
            block = hash_alg(block).digest()

        key += block

    return key[:key_size]


def _pbes1(params, passphrase, hash_alg, cipher_name):
    """PKCS#5 v1.5 cipher selection function for password-based encryption

       This function returns a cipher object which can be used to
       decrypt data based on the specified encryption parameters,
       passphrase, and salt.

    """

    if (not isinstance(params, tuple) or len(params) != 2 or
            not isinstance(params[0], bytes) or
            not isinstance(params[1], int) or
            not 1 <= params[1] <= _MAX_ITERATIONS):
        raise KeyEncryptionError('Invalid PBES1 encryption parameters')

    salt, count = params
    key_size, iv_size, _ = get_cipher_params(cipher_name)

    key = _pbkdf1(hash_alg, passphrase, salt, count, key_size + iv_size)
    key, iv = key[:key_size], key[key_size:]

    return _RFC1423Pad(BasicCipher(cipher_name, key, iv))


def _pbes2_pbkdf2(params, passphrase, default_key_size):
    """PKCS#5 v2.0 handler for PBKDF2 key derivation

       This function parses the PBKDF2 arguments from a PKCS#8 encrypted
       key and returns the encryption key to use for decryption.

    """

    if (len(params) != 1 or not isinstance(params[0], tuple) or
            len(params[0]) < 2):
        raise KeyEncryptionError('Invalid PBES2 key derivation parameters')

    params = list(params[0])

    if (not isinstance(params[0], bytes) or
            not isinstance(params[1], int) or
            not 1 <= params[1] <= _MAX_ITERATIONS):
        raise KeyEncryptionError('Invalid PBES2 key derivation parameters')

    salt = params.pop(0)
    count = params.pop(0)

    if params and isinstance(params[0], int):
        key_size = params.pop(0)

        if key_size != default_key_size:
            raise KeyEncryptionError('Invalid PBES2 key length')
    else:
        key_size = default_key_size

    if params:
        if (isinstance(params[0], tuple) and len(params[0]) in (1, 2) and
                isinstance(params[0][0], ObjectIdentifier)):
            prf_alg = params[0][0]

            if prf_alg not in _pbes2_prfs:
                raise KeyEncryptionError('Unknown PBES2 pseudo-random '
                                         'function')

            hash_name = _pbes2_prfs[prf_alg]
        else:
            raise KeyEncryptionError('Invalid PBES2 pseudo-random function '
                                     'parameters')
    else:
        hash_name = 'sha1'

    return pbkdf2_hmac(hash_name, passphrase, salt, count, key_size)


def _pbes2(params, passphrase):
    """PKCS#5 v2.0 cipher selection function for password-based encryption

       This function returns a cipher object which can be used to
       decrypt data based on the specified encryption parameters and
       passphrase. Only PBKDF2 key derivation is supported.

    """

    if (not isinstance(params, tuple) or len(params) != 2 or
            not isinstance(params[0], tuple) or len(params[0]) < 1 or
            not isinstance(params[1], tuple) or len(params[1]) != 2):
        raise KeyEncryptionError('Invalid PBES2 encryption parameters')

    kdf_params = list(params[0])

    if kdf_params.pop(0) != _ES2_PBKDF2:
        raise KeyEncryptionError('Unknown PBES2 key derivation function')

    enc_alg, iv = params[1]

    if enc_alg not in _pbes2_ciphers:
        raise KeyEncryptionError('Unknown PBES2 encryption algorithm')

    cipher_name = _pbes2_ciphers[enc_alg]
    key_size, iv_size, _ = get_cipher_params(cipher_name)

    if not isinstance(iv, bytes) or len(iv) != iv_size:
        raise KeyEncryptionError('Invalid length IV for PBES2 encryption')

    key = _pbes2_pbkdf2(kdf_params, passphrase, key_size)
    return _RFC1423Pad(BasicCipher(cipher_name, key, iv))


def register_pem_cipher(cipher_name, alg):
    """Register a cipher used for PEM private key encryption"""

    _pem_ciphers[alg] = cipher_name
    _pem_cipher_names[cipher_name] = alg


def register_pbes1_cipher(alg, hash_alg, cipher_name):
    """Register a PBES1 encryption algorithm"""

    _pbes1_ciphers[alg] = (hash_alg, cipher_name)


def register_pbes2_cipher(alg, cipher_name):
    """Register a PBES2 encryption algorithm"""

    _pbes2_ciphers[alg] = cipher_name


def register_pbes2_prf(alg, hash_name):
    """Register a PBES2 pseudo-random function"""

    _pbes2_prfs[alg] = hash_name


def get_pem_ciphers():
    """Return the names of the ciphers available for PEM encryption"""

    return list(_pem_cipher_names)


def pem_encrypt(data, cipher_name, passphrase):
    """Encrypt traditional private key data for a PEM container

       This function encrypts DER key data using the specified cipher
       and passphrase. It returns the DEK-Info algorithm name, the IV
       and the encrypted data. Available ciphers include:

           aes128-cbc, aes192-cbc, aes256-cbc, des-cbc, des3-cbc

    """

    if cipher_name not in _pem_cipher_names:
        raise KeyEncryptionError('Unknown PEM encryption algorithm: %s' %
                                 cipher_name)

    alg = _pem_cipher_names[cipher_name]
    key_size, iv_size, _ = get_cipher_params(cipher_name)

    iv = os.urandom(iv_size)
    key = _pbkdf1(md5, _to_bytes(passphrase), iv[:8], 1, key_size)

    cipher = _RFC1423Pad(BasicCipher(cipher_name, key, iv))
    return alg, iv, cipher.encrypt(data)


def pem_decrypt(data, alg, iv, passphrase):
    """Decrypt traditional private key data from a PEM container

       This function decrypts key data using the specified algorithm,
       initialization vector, and passphrase. The algorithm name and IV
       should be taken from the PEM DEK-Info header.

    """

    if alg not in _pem_ciphers:
        raise KeyEncryptionError('Unknown PEM encryption algorithm')

    cipher_name = _pem_ciphers[alg]
    key_size, iv_size, _ = get_cipher_params(cipher_name)

    if len(iv) != iv_size:
        raise KeyEncryptionError('Invalid length IV for PEM encryption')

    key = _pbkdf1(md5, _to_bytes(passphrase), iv[:8], 1, key_size)

    cipher = _RFC1423Pad(BasicCipher(cipher_name, key, iv))
    return cipher.decrypt(data)


def pkcs8_decrypt(key_data, passphrase):
    """Decrypt PKCS#8 key data

       This function decrypts key data in PKCS#8 EncryptedPrivateKeyInfo
       format using the specified passphrase, returning the decoded
       PrivateKeyInfo structure.

    """

    if not isinstance(key_data, tuple) or len(key_data) != 2:
        raise KeyEncryptionError('Invalid PKCS#8 encrypted key format')

    alg_params, data = key_data

    if (not isinstance(alg_params, tuple) or len(alg_params) != 2 or
            not isinstance(data, bytes)):
        raise KeyEncryptionError('Invalid PKCS#8 encrypted key format')

    alg, params = alg_params
    passphrase = _to_bytes(passphrase)

    if alg == _ES2:
        cipher = _pbes2(params, passphrase)
    elif alg in _pbes1_ciphers:
        hash_alg, cipher_name = _pbes1_ciphers[alg]
        cipher = _pbes1(params, passphrase, hash_alg, cipher_name)
    else:
        raise KeyEncryptionError('Unknown PKCS#8 encryption algorithm')

    try:
        return der_decode(cipher.decrypt(data))
    except ASN1DecodeError:
        raise KeyEncryptionError('Invalid PKCS#8 encrypted key data') from None


# pylint: disable=bad-whitespace

_pem_cipher_list = (
    ('aes128-cbc', b'AES-128-CBC'),
    ('aes192-cbc', b'AES-192-CBC'),
    ('aes256-cbc', b'AES-256-CBC'),
    ('des-cbc',    b'DES-CBC'),
    ('des3-cbc',   b'DES-EDE3-CBC')
)

_pbes1_cipher_list = (
    (_ES1_MD5_DES,  md5,  'des-cbc'),
    (_ES1_SHA1_DES, sha1, 'des-cbc')
)

_pbes2_cipher_list = (
    (_ES2_AES128, 'aes128-cbc'),
    (_ES2_AES192, 'aes192-cbc'),
    (_ES2_AES256, 'aes256-cbc'),
    (_ES2_DES,    'des-cbc'),
    (_ES2_DES3,   'des3-cbc')
)

_pbes2_prf_list = (
    (_ES2_SHA1,       'sha1'),
    (_ES2_SHA224,     'sha224'),
    (_ES2_SHA256,     'sha256'),
    (_ES2_SHA384,     'sha384'),
    (_ES2_SHA512,     'sha512'),
    (_ES2_SHA512_224, 'sha512-224'),
    (_ES2_SHA512_256, 'sha512-256')
)

# pylint: enable=bad-whitespace

for _args in _pem_cipher_list:
    register_pem_cipher(*_args)

for _args in _pbes1_cipher_list:
    register_pbes1_cipher(*_args)

for _args in _pbes2_cipher_list:
    register_pbes2_cipher(*_args)

for _args in _pbes2_prf_list:
    register_pbes2_prf(*_args)
