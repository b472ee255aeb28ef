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

"""DER and PEM encodings of asymmetric keys

   Decoding here is generic: it recognizes the standard private and
   public key structures of several algorithms so that callers can
   tell a key of the wrong type from data which isn't a key at all.
   Only DSA keys have their components extracted. Encoding covers the
   two DSA formats keys are exported in, the traditional OpenSSL
   private key structure and the X.509 SubjectPublicKeyInfo.

"""

import binascii
from collections import OrderedDict

from .asn1 import ASN1DecodeError, BitString, ObjectIdentifier
from .asn1 import TaggedDERObject, der_encode, der_decode
from .logging import logger
from .misc import Record, all_ints
from .pbe import KeyEncryptionError, pem_encrypt, pem_decrypt, pkcs8_decrypt


_pem_map = {}
_pkcs8_oid_map = {}

_DSA_LEGACY_PUBLIC = b'DSA PUBLIC KEY'


class KeyImportError(ValueError):
    """Key import error

       This exception is raised internally when data doesn't match the
       key encoding currently being tried.

    """


class DecodedKey(Record):
    """A key recovered from its encoded form

       The algorithm is the OpenSSL short name of the key type. For
       DSA keys, params holds p, q, g, y and, for private keys, x.
       Other algorithms carry their decoded structure unchanged.

    """

    __slots__ = OrderedDict((('algorithm', None), ('params', None),
                             ('private', False)))


def _wrap_base64(data, wrap=64):
    """Break a Base64 value into multiple lines."""

    data = binascii.b2a_base64(data)[:-1]
    return b'\n'.join(data[i:i+wrap]
                      for i in range(0, len(data), wrap)) + b'\n'


def _encode_pem(keytype, data, headers=b''):
    """Wrap DER data in a PEM container"""

    return (b'-----BEGIN ' + keytype + b'-----\n' + headers +
            _wrap_base64(data) + b'-----END ' + keytype + b'-----\n')


def _decode_pem(lines, start=0, keytype=None):
    """Decode a PEM container

       The lines are searched from the given start for the next block,
       limited to blocks of the given keytype if one is specified.
       The keytype, headers and DER data of the block are returned,
       along with the index of the line following it.

    """

    begin = None
    line = b''
    for i, line in enumerate(lines[start:], start):
        line = line.strip()
        if (line.startswith(b'-----BEGIN ') and line.endswith(b'-----') and
                (keytype is None or line[11:-5] == keytype)):
            begin = i+1
            break

    if begin is None:
        raise KeyImportError('Missing PEM header')

    keytype = line[11:-5].strip()

    headers = {}
    start = begin
    for start, line in enumerate(lines[begin:], begin):
        line = line.strip()
        if b':' in line:
            hdr, value = line.split(b':', 1)
            headers[hdr.strip()] = value.strip()
        else:
            break

    end = None
    tail = b'-----END ' + keytype + b'-----'
    for i, line in enumerate(lines[start:], start):
        if line.strip() == tail:
            end = i
            break

    if end is None:
        raise KeyImportError('Missing PEM footer')

    try:
        data = binascii.a2b_base64(b''.join(lines[start:end]))
    except binascii.Error:
        raise KeyImportError('Invalid PEM data') from None

    return keytype, headers, data, end+1


class _KeyFormat:
    """Base class for the structures of a key algorithm

       Decode methods return the key parameters, or None when the data
       doesn't have the expected structure. Subclasses only override
       the structures their algorithm defines.

    """

    algorithm = None
    pem_name = None
    pkcs8_oid = None

    # Type-specific public keys only consulted by decode_legacy_public
    legacy_public = False

    @classmethod
    def decode_pkcs1_private(cls, key_data):
        """Decode a type-specific private key"""

        # pylint: disable=unused-argument
        return None

    @classmethod
    def decode_pkcs1_public(cls, key_data):
        """Decode a type-specific public key"""

        # pylint: disable=unused-argument
        return None

    @classmethod
    def decode_pkcs8_private(cls, alg_params, data):
        """Decode the key data of a PKCS#8 private key"""

        # pylint: disable=unused-argument
        return None

    @classmethod
    def decode_pkcs8_public(cls, alg_params, data):
        """Decode the key data of a SubjectPublicKeyInfo"""

        # pylint: disable=unused-argument
        return None


class _DSAFormat(_KeyFormat):
    """DSA key structures"""

    # Short variable names are used here, matching names in FIPS 186
    # pylint: disable=invalid-name

    algorithm = 'DSA'
    pem_name = b'DSA'
    pkcs8_oid = ObjectIdentifier('1.2.840.10040.4.1')
    legacy_public = True

    @staticmethod
    def _valid(values):
        """Return if all DSA values are non-negative integers"""

        return all_ints(values) and all(v >= 0 for v in values)

    @classmethod
    def decode_pkcs1_private(cls, key_data):
        if (isinstance(key_data, tuple) and len(key_data) == 6 and
                cls._valid(key_data) and key_data[0] == 0):
            return key_data[1:]
        else:
            return None

    @classmethod
    def decode_pkcs1_public(cls, key_data):
        if (isinstance(key_data, tuple) and len(key_data) == 4 and
                cls._valid(key_data)):
            y, p, q, g = key_data
            return p, q, g, y
        else:
            return None

    @classmethod
    def decode_pkcs8_private(cls, alg_params, data):
        try:
            x = der_decode(data)
        except ASN1DecodeError:
            return None

        if (isinstance(alg_params, tuple) and len(alg_params) == 3 and
                cls._valid(alg_params + (x,)) and alg_params[0] > 0):
            p, q, g = alg_params
            y = pow(g, x, p)
            return p, q, g, y, x
        else:
            return None

    @classmethod
    def decode_pkcs8_public(cls, alg_params, data):
        try:
            y = der_decode(data)
        except ASN1DecodeError:
            return None

        if (isinstance(alg_params, tuple) and len(alg_params) == 3 and
                cls._valid(alg_params + (y,))):
            p, q, g = alg_params
            return p, q, g, y
        else:
            return None

    @classmethod
    def encode_pkcs1_private(cls, p, q, g, y, x):
        """Encode a traditional format DSA private key"""

        return (0, p, q, g, y, x)

    @classmethod
    def encode_pkcs8_public(cls, p, q, g, y):
        """Encode the algorithm parameters and key data of a DSA
           SubjectPublicKeyInfo"""

        return (p, q, g), der_encode(y)


class _RSAFormat(_KeyFormat):
    """RSA key structures"""

    algorithm = 'rsaEncryption'
    pem_name = b'RSA'
    pkcs8_oid = ObjectIdentifier('1.2.840.113549.1.1.1')

    @classmethod
    def decode_pkcs1_private(cls, key_data):
        if (isinstance(key_data, tuple) and len(key_data) >= 9 and
                all_ints(key_data[:9]) and key_data[0] in (0, 1)):
            return key_data[1:3]
        else:
            return None

    @classmethod
    def decode_pkcs1_public(cls, key_data):
        if (isinstance(key_data, tuple) and len(key_data) == 2 and
                all_ints(key_data)):
            return key_data
        else:
            return None

    @classmethod
    def decode_pkcs8_private(cls, alg_params, data):
        try:
            return cls.decode_pkcs1_private(der_decode(data))
        except ASN1DecodeError:
            return None

    @classmethod
    def decode_pkcs8_public(cls, alg_params, data):
        try:
            return cls.decode_pkcs1_public(der_decode(data))
        except ASN1DecodeError:
            return None


class _RSAPSSFormat(_RSAFormat):
    """RSA-PSS key structures, which exist only in PKCS#8 form"""

    algorithm = 'RSASSA-PSS'
    pem_name = None
    pkcs8_oid = ObjectIdentifier('1.2.840.113549.1.1.10')


class _ECFormat(_KeyFormat):
    """Elliptic curve key structures"""

    algorithm = 'id-ecPublicKey'
    pem_name = b'EC'
    pkcs8_oid = ObjectIdentifier('1.2.840.10045.2.1')

    @classmethod
    def decode_pkcs1_private(cls, key_data):
        if (isinstance(key_data, tuple) and 2 <= len(key_data) <= 4 and
                key_data[0] == 1 and isinstance(key_data[1], bytes) and
                all(isinstance(item, TaggedDERObject)
                    for item in key_data[2:])):
            return key_data[1:]
        else:
            return None

    @classmethod
    def decode_pkcs8_private(cls, alg_params, data):
        try:
            return cls.decode_pkcs1_private(der_decode(data))
        except ASN1DecodeError:
            return None

    @classmethod
    def decode_pkcs8_public(cls, alg_params, data):
        if (isinstance(alg_params, (ObjectIdentifier, tuple)) and data and
                data[0] in (2, 3, 4)):
            return alg_params, data
        else:
            return None


class _RawKeyFormat(_KeyFormat):
    """Structures of keys stored as a fixed-size byte string"""

    key_size = None

    @classmethod
    def decode_pkcs8_private(cls, alg_params, data):
        try:
            value = der_decode(data)
        except ASN1DecodeError:
            return None

        if (alg_params is None and isinstance(value, bytes) and
                len(value) == cls.key_size):
            return (value,)
        else:
            return None

    @classmethod
    def decode_pkcs8_public(cls, alg_params, data):
        if alg_params is None and len(data) == cls.key_size:
            return (data,)
        else:
            return None


class _Ed25519Format(_RawKeyFormat):
    """Ed25519 key structures"""

    algorithm = 'ED25519'
    pkcs8_oid = ObjectIdentifier('1.3.101.112')
    key_size = 32


class _Ed448Format(_RawKeyFormat):
    """Ed448 key structures"""

    algorithm = 'ED448'
    pkcs8_oid = ObjectIdentifier('1.3.101.113')
    key_size = 57


class _X25519Format(_RawKeyFormat):
    """X25519 key structures"""

    algorithm = 'X25519'
    pkcs8_oid = ObjectIdentifier('1.3.101.110')
    key_size = 32


class _X448Format(_RawKeyFormat):
    """X448 key structures"""

    algorithm = 'X448'
    pkcs8_oid = ObjectIdentifier('1.3.101.111')
    key_size = 56


class _DHFormat(_KeyFormat):
    """PKCS#3 Diffie-Hellman key structures"""

    algorithm = 'dhKeyAgreement'
    pkcs8_oid = ObjectIdentifier('1.2.840.113549.1.3.1')

    @classmethod
    def _decode(cls, alg_params, data):
        """Decode a DH parameter set and key value"""

        try:
            value = der_decode(data)
        except ASN1DecodeError:
            return None

        if (isinstance(alg_params, tuple) and 2 <= len(alg_params) <= 3 and
                all_ints(alg_params) and isinstance(value, int)):
            return alg_params + (value,)
        else:
            return None

    decode_pkcs8_private = _decode
    decode_pkcs8_public = _decode


def _decode_pkcs1_private(pem_name, key_data):
    """Decode a type-specific private key"""

    handler = _pem_map.get(pem_name)
    if handler is None:
        raise KeyImportError('Unknown PEM key type: %s' %
                             pem_name.decode('ascii', errors='replace'))

    key_params = handler.decode_pkcs1_private(key_data)
    if key_params is None:
        raise KeyImportError('Invalid %s private key' % handler.algorithm)

    return DecodedKey(handler.algorithm, key_params, True)


def _decode_pkcs1_public(pem_name, key_data):
    """Decode a type-specific public key"""

    handler = _pem_map.get(pem_name)
    if handler is None or handler.legacy_public:
        raise KeyImportError('Unknown PEM key type: %s' %
                             pem_name.decode('ascii', errors='replace'))

    key_params = handler.decode_pkcs1_public(key_data)
    if key_params is None:
        raise KeyImportError('Invalid %s public key' % handler.algorithm)

    return DecodedKey(handler.algorithm, key_params, False)


def _decode_pkcs8_private(key_data):
    """Decode a PKCS#8 format private key"""

    if (isinstance(key_data, tuple) and len(key_data) >= 3 and
            key_data[0] in (0, 1) and isinstance(key_data[1], tuple) and
            1 <= len(key_data[1]) <= 2 and isinstance(key_data[2], bytes)):
        alg = key_data[1][0]
        alg_params = key_data[1][1] if len(key_data[1]) == 2 else None

        handler = _pkcs8_oid_map.get(alg)
        if handler is None:
            raise KeyImportError('Unknown PKCS#8 algorithm')

        key_params = handler.decode_pkcs8_private(alg_params, key_data[2])
        if key_params is None:
            raise KeyImportError('Invalid %s private key' % handler.algorithm)

        return DecodedKey(handler.algorithm, key_params, True)
    else:
        raise KeyImportError('Invalid PKCS#8 private key')


def _decode_pkcs8_public(key_data):
    """Decode a SubjectPublicKeyInfo format public key"""

    if (isinstance(key_data, tuple) and len(key_data) == 2 and
            isinstance(key_data[0], tuple) and 1 <= len(key_data[0]) <= 2 and
            isinstance(key_data[1], BitString) and key_data[1].unused == 0):
        alg = key_data[0][0]
        alg_params = key_data[0][1] if len(key_data[0]) == 2 else None

        handler = _pkcs8_oid_map.get(alg)
        if handler is None:
            raise KeyImportError('Unknown PKCS#8 algorithm')

        key_params = handler.decode_pkcs8_public(alg_params, key_data[1].value)
        if key_params is None:
            raise KeyImportError('Invalid %s public key' % handler.algorithm)

        return DecodedKey(handler.algorithm, key_params, False)
    else:
        raise KeyImportError('Invalid PKCS#8 public key')


def _decode_der_private(data, passphrase):
    """Decode a DER format private key"""

    try:
        key_data = der_decode(data)
    except ASN1DecodeError:
        raise KeyImportError('Invalid DER private key') from None

    # First, if there's a passphrase, try to decrypt PKCS#8
    if passphrase is not None:
        try:
            key_data = pkcs8_decrypt(key_data, passphrase)
        except KeyEncryptionError:
            # Decryption failed - try decoding it as unencrypted
            pass

    # Then, try to decode PKCS#8
    try:
        return _decode_pkcs8_private(key_data)
    except KeyImportError:
        # PKCS#8 failed - try the type-specific formats instead
        pass

    for pem_name in _pem_map:
        try:
            return _decode_pkcs1_private(pem_name, key_data)
        except KeyImportError:
            # Try the next type-specific format
            pass

    raise KeyImportError('Invalid DER private key')


def _decode_der_public(data):
    """Decode a DER format public key"""

    try:
        key_data = der_decode(data)
    except ASN1DecodeError:
        raise KeyImportError('Invalid DER public key') from None

    try:
        return _decode_pkcs8_public(key_data)
    except KeyImportError:
        pass

    for pem_name, handler in _pem_map.items():
        if not handler.legacy_public:
            try:
                return _decode_pkcs1_public(pem_name, key_data)
            except KeyImportError:
                pass

    raise KeyImportError('Invalid DER public key')


def _decode_pem_private(keytype, headers, data, passphrase):
    """Decode a PEM format private key"""

    if not keytype.endswith(b'PRIVATE KEY'):
        raise KeyImportError('Not a PEM private key')

    pem_name = keytype[:-11].strip()

    if headers.get(b'Proc-Type') == b'4,ENCRYPTED':
        if passphrase is None:
            raise KeyImportError('Passphrase must be specified to import '
                                 'encrypted private keys')

        dek_info = headers.get(b'DEK-Info', b'').split(b',')
        if len(dek_info) != 2:
            raise KeyImportError('Invalid PEM encryption params')

        alg, iv = dek_info
        try:
            iv = binascii.a2b_hex(iv)
        except binascii.Error:
            raise KeyImportError('Invalid PEM encryption params') from None

        try:
            data = pem_decrypt(data, alg, iv, passphrase)
        except KeyEncryptionError:
            raise KeyImportError('Unable to decrypt PEM '
                                 'private key') from None

    try:
        key_data = der_decode(data)
    except ASN1DecodeError:
        raise KeyImportError('Invalid PEM private key') from None

    if pem_name == b'ENCRYPTED':
        if passphrase is None:
            raise KeyImportError('Passphrase must be specified to import '
                                 'encrypted private keys')

        pem_name = b''

        try:
            key_data = pkcs8_decrypt(key_data, passphrase)
        except KeyEncryptionError:
            raise KeyImportError('Unable to decrypt PKCS#8 '
                                 'private key') from None

    if pem_name:
        return _decode_pkcs1_private(pem_name, key_data)
    else:
        return _decode_pkcs8_private(key_data)


def _decode_pem_public(keytype, data):
    """Decode a PEM format public key"""

    if not keytype.endswith(b'PUBLIC KEY'):
        raise KeyImportError('Not a PEM public key')

    pem_name = keytype[:-10].strip()

    try:
        key_data = der_decode(data)
    except ASN1DecodeError:
        raise KeyImportError('Invalid PEM public key') from None

    if pem_name:
        return _decode_pkcs1_public(pem_name, key_data)
    else:
        return _decode_pkcs8_public(key_data)


def _to_bytes(data):
    """Convert key data to bytes, rejecting non-ASCII strings"""

    if isinstance(data, str):
        try:
            return data.encode('ascii')
        except UnicodeEncodeError:
            raise KeyImportError('Invalid encoding for key data') from None

    return bytes(data)


def decode_any(data, passphrase=None):
    """Decode a key of any recognized algorithm and encoding

       DER private keys (traditional, PKCS#8 and encrypted PKCS#8) and
       DER public keys (SubjectPublicKeyInfo and PKCS#1 RSA) are tried
       first. Then each PEM block of the data is tried in turn as a
       private and a public key, skipping blocks which hold neither,
       such as the parameters written ahead of a generated key. The
       passphrase is only used to decrypt private keys which are
       encrypted.

       :returns: A :class:`DecodedKey`, or `None` if no encoding matched

    """

    try:
        data = _to_bytes(data)
    except KeyImportError as exc:
        logger.debug2('Key data not decoded: %s', str(exc))
        return None

    attempts = [('DER private key', _decode_der_private, (data, passphrase)),
                ('DER public key', _decode_der_public, (data,))]

    lines = data.splitlines()
    start = 0

    while start < len(lines):
        try:
            keytype, headers, pem_data, start = _decode_pem(lines, start)
        except KeyImportError as exc:
            logger.debug2('Not a PEM key: %s', str(exc))
            break

        attempts.append(('PEM private key', _decode_pem_private,
                         (keytype, headers, pem_data, passphrase)))
        attempts.append(('PEM public key', _decode_pem_public,
                         (keytype, pem_data)))

    for label, decoder, args in attempts:
        try:
            key = decoder(*args)
        except KeyImportError as exc:
            logger.debug2('Not a %s: %s', label, str(exc))
        else:
            logger.debug1('Decoded %s %s', key.algorithm, label)
            return key

    return None


def decode_legacy_public(data):
    """Decode a bare DSA public key

       This is the type-specific "DSA PUBLIC KEY" structure holding
       y, p, q and g, in PEM or DER form, without the algorithm
       identifier of a SubjectPublicKeyInfo.

       :returns: A :class:`DecodedKey`, or `None` if the data doesn't
                 hold this structure

    """

    try:
        data = _to_bytes(data)

        if data.lstrip().startswith(b'-----'):
            _, _, data, _ = _decode_pem(data.splitlines(),
                                        keytype=_DSA_LEGACY_PUBLIC)

        key_data = der_decode(data)
    except (KeyImportError, ASN1DecodeError) as exc:
        logger.debug2('Not a legacy DSA public key: %s', str(exc))
        return None

    key_params = _DSAFormat.decode_pkcs1_public(key_data)

    if key_params is None:
        logger.debug2('Not a legacy DSA public key: Invalid structure')
        return None

    logger.debug1('Decoded legacy DSA public key')
    return DecodedKey(_DSAFormat.algorithm, key_params, False)


def encode_private(params, cipher_name=None, passphrase=None, pem=True):
    """Encode a DSA private key in the traditional OpenSSL format

       The params are p, q, g, y and x. When PEM output is requested
       and a passphrase is given, the key is encrypted using the
       RFC 1423 "Proc-Type" and "DEK-Info" headers. DER output is
       never encrypted.

    """

    data = der_encode(_DSAFormat.encode_pkcs1_private(*params))

    if not pem:
        return data

    if passphrase is not None:
        alg, iv, data = pem_encrypt(data, cipher_name, passphrase)
        headers = (b'Proc-Type: 4,ENCRYPTED\n' +
                   b'DEK-Info: ' + alg + b',' +
                   binascii.b2a_hex(iv).upper() + b'\n\n')
    else:
        headers = b''

    return _encode_pem(_DSAFormat.pem_name + b' PRIVATE KEY', data, headers)


def encode_public_info(params, pem=True):
    """Encode a DSA public key as an X.509 SubjectPublicKeyInfo

       The params are p, q, g and y.

    """

    alg_params, data = _DSAFormat.encode_pkcs8_public(*params)

    data = der_encode(((_DSAFormat.pkcs8_oid, alg_params), BitString(data)))

    return _encode_pem(b'PUBLIC KEY', data) if pem else data


def register_key_format(handler):
    """Register the encodings of a key algorithm"""

    if handler.pem_name:
        _pem_map[handler.pem_name] = handler

    if handler.pkcs8_oid:
        _pkcs8_oid_map[handler.pkcs8_oid] = handler


for _handler in (_DSAFormat, _RSAFormat, _RSAPSSFormat, _ECFormat,
                 _Ed25519Format, _Ed448Format, _X25519Format, _X448Format,
                 _DHFormat):
    register_key_format(_handler)
