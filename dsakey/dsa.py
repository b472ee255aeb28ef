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

"""DSA key objects

   A :class:`DSAKey` holds the five DSA components p, q, g, the public
   value and the private value, each of which may be unset. Keys are
   created empty, generated, or imported from their DER or PEM
   encodings, and can be exported back to those encodings, sign
   already computed digests and verify signatures on them.

"""

from cryptography.exceptions import UnsupportedAlgorithm

from .asn1 import ASN1DecodeError, der_encode, der_decode
from .crypto import DSAPrivateKey, DSAPublicKey
from .encoding import decode_any, decode_legacy_public
from .encoding import encode_private, encode_public_info
from .logging import logger
from .misc import CryptoOperationError, FormatError, IncompleteKeyError
from .misc import KeyExportError, KeyGenerationError, KeyPermissionError
from .misc import StateError, TypeMismatchError, all_ints, read_file
from .pbe import KeyEncryptionError, get_pem_ciphers


# Short variable names are used here, matching names in FIPS 186
# pylint: disable=invalid-name

_SUPPORTED_KEY_SIZES = (1024, 2048, 3072, 4096)

_default_key_size = 2048
_default_cipher = 'aes256-cbc'


def set_default_key_size(key_size):
    """Set the size of keys generated when no size is given

       :param key_size:
           The size of p in bits, one of 1024, 2048, 3072 or 4096
       :type key_size: `int`

    """

    # pylint: disable=global-statement

    global _default_key_size

    if key_size not in _SUPPORTED_KEY_SIZES:
        raise ValueError('Unsupported DSA key size: %s' % key_size)

    _default_key_size = key_size


def set_default_cipher(cipher_name):
    """Set the cipher used to encrypt exported private keys

       This cipher is used when :meth:`DSAKey.export` is given a
       passphrase but no cipher. Available ciphers are:

           aes128-cbc, aes192-cbc, aes256-cbc, des-cbc, des3-cbc

       :param cipher_name:
           The name of the cipher to use
       :type cipher_name: `str`

    """

    # pylint: disable=global-statement

    global _default_cipher

    if cipher_name not in get_pem_ciphers():
        raise ValueError('Unknown PEM encryption algorithm: %s' % cipher_name)

    _default_cipher = cipher_name


def _check_bytes(value, name):
    """Check that an argument is a byte string"""

    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise TypeError('%s must be bytes, got %s' %
                        (name, type(value).__name__))

    return bytes(value)


def _check_component(value, name):
    """Check that a key component can be stored"""

    if value is None:
        raise StateError('DSA %s must be set' % name)

    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError('DSA %s must be an integer, got %s' %
                        (name, type(value).__name__))

    if value < 0:
        raise StateError('DSA %s must not be negative' % name)

    return value


class DSAKey:
    """A DSA public or private key

       An empty key can be populated with :meth:`set_pqg` and
       :meth:`set_key`, while :meth:`generate` and :meth:`import_key`
       return keys which are already populated.

       The private flag marks a key which came from a private source
       as private even when its private value isn't present. It only
       affects :meth:`is_private` and the check made before signing.

       .. note:: Keys are not thread-safe. A key may be read from
                 several threads at once, but any call which modifies
                 it must not run concurrently with other calls on the
                 same key.

    """

    def __init__(self, private_flag=False):
        self._p = None
        self._q = None
        self._g = None
        self._y = None
        self._x = None
        self._private_flag = bool(private_flag)

    def __repr__(self):
        if self._x is not None:
            kind = 'private'
        elif self._y is not None:
            kind = 'public'
        else:
            kind = 'empty'

        if self._p is not None:
            return '<DSAKey %d-bit %s>' % (self.key_size, kind)
        else:
            return '<DSAKey %s>' % kind

    def __eq__(self, other):
        if not isinstance(other, DSAKey):
            return NotImplemented

        return self._components() == other._components()

    __hash__ = None

    def __copy__(self):
        return self.clone()

    def __deepcopy__(self, memo):
        return self.clone()

    def _components(self):
        """Return all five components, with None for those not set"""

        return self._p, self._q, self._g, self._y, self._x

    def _make_private_key(self):
        """Construct the PyCA private key used for signing"""

        if None in (self._p, self._q, self._g, self._y, self._x):
            raise CryptoOperationError('Incomplete DSA private key')

        try:
            return DSAPrivateKey.construct(self._p, self._q, self._g,
                                           self._y, self._x)
        except (ValueError, UnsupportedAlgorithm) as exc:
            raise CryptoOperationError('Invalid DSA private key: %s' %
                                       exc) from None

    def _make_public_key(self):
        """Construct the PyCA public key used for verification"""

        if None in (self._p, self._q, self._g, self._y):
            raise CryptoOperationError('Incomplete DSA public key')

        try:
            return DSAPublicKey.construct(self._p, self._q, self._g, self._y)
        except (ValueError, UnsupportedAlgorithm) as exc:
            raise CryptoOperationError('Invalid DSA public key: %s' %
                                       exc) from None

    def _export_params(self, private):
        """Return the components needed to export this key"""

        params = self._components() if private else self._components()[:4]

        if None in params:
            raise StateError('Incomplete DSA key: p, q, g and the public '
                             'value must be set to export it')

        return params

    @classmethod
    def generate(cls, key_size=None):
        """Generate a new DSA private key

           :param key_size: (optional)
               The size of p in bits, one of 1024, 2048, 3072 or 4096.
               If not specified, the default set by
               :func:`set_default_key_size` is used.
           :type key_size: `int`

           :returns: A :class:`DSAKey` with all components set

           :raises: :exc:`KeyGenerationError` if the key size is
                    not supported

        """

        if key_size is None:
            key_size = _default_key_size

        if key_size not in _SUPPORTED_KEY_SIZES:
            raise KeyGenerationError('Unsupported DSA key size: %s' %
                                     key_size)

        try:
            priv_key = DSAPrivateKey.generate(key_size)
        except (ValueError, UnsupportedAlgorithm) as exc:
            raise KeyGenerationError(str(exc)) from None

        logger.debug1('Generated %d-bit DSA key', key_size)

        key = cls(private_flag=True)
        key.set_pqg(priv_key.p, priv_key.q, priv_key.g)
        key.set_key(priv_key.y, priv_key.x)

        return key

    @classmethod
    def import_key(cls, data, passphrase=None):
        """Import a DSA key from its DER or PEM encoding

           Private keys may be in traditional or PKCS#8 format, and
           public keys may be X.509 SubjectPublicKeyInfo or the bare
           "DSA PUBLIC KEY" structure. Encrypted private keys are
           decrypted using the passphrase, which is ignored otherwise.

           :param data:
               The data to import.
           :param passphrase: (optional)
               The passphrase to use to decrypt the key.
           :type data: `bytes` or ASCII `str`
           :type passphrase: `str` or `bytes`

           :returns: A :class:`DSAKey`

           :raises: | :exc:`TypeMismatchError` if the data holds a
                      key of another algorithm
                    | :exc:`FormatError` if no key could be decoded

        """

        if not isinstance(data, str):
            data = _check_bytes(data, 'Key data')

        if passphrase is not None and not isinstance(passphrase, str):
            passphrase = _check_bytes(passphrase, 'Passphrase')

        decoded = decode_any(data, passphrase)

        if decoded is not None and decoded.algorithm != 'DSA':
            raise TypeMismatchError(decoded.algorithm)

        if decoded is None:
            decoded = decode_legacy_public(data)

        if decoded is None:
            raise FormatError('Neither public nor private key recognized')

        p, q, g, y = decoded.params[:4]
        x = decoded.params[4] if decoded.private else None

        key = cls(private_flag=decoded.private)
        key.set_pqg(p, q, g)
        key.set_key(y, x)

        logger.debug1('Imported %s DSA key',
                      'private' if decoded.private else 'public')

        return key

    @property
    def p(self):
        """The DSA prime modulus, or `None` if not set"""

        return self._p

    @property
    def q(self):
        """The DSA subgroup order, or `None` if not set"""

        return self._q

    @property
    def g(self):
        """The DSA generator, or `None` if not set"""

        return self._g

    @property
    def public_component(self):
        """The DSA public value, or `None` if not set"""

        return self._y

    @property
    def private_component(self):
        """The DSA private value, or `None` if not set"""

        return self._x

    @property
    def key_size(self):
        """The size of p in bits, or 0 if p isn't set"""

        return self._p.bit_length() if self._p is not None else 0

    @property
    def private_flag(self):
        """Whether this key is marked as coming from a private source"""

        return self._private_flag

    def set_private_flag(self, private_flag=True):
        """Mark or unmark this key as coming from a private source

           A marked key reports itself as private and is allowed to
           attempt signing even when its private value isn't set.

        """

        self._private_flag = bool(private_flag)
        return self

    def is_public(self):
        """Return whether the public value of this key is set"""

        return self._y is not None

    def is_private(self):
        """Return whether this key can be used for signing

           This is true when the private value is set or the key is
           marked as coming from a private source.

        """

        return self._x is not None or self._private_flag

    def get_params(self):
        """Return all components of this key

           Components which aren't set are returned as 0.

           .. warning:: The result includes the private value when it
                        is set, so it must be handled as sensitive.

           :returns: `dict` mapping p, q, g, public_component and
                     private_component to their values

        """

        return {name: value if value is not None else 0
                for name, value in zip(('p', 'q', 'g', 'public_component',
                                        'private_component'),
                                       self._components())}

    def set_pqg(self, p, q, g):
        """Set the DSA domain parameters

           All three values must be given, even when only some of them
           change.

           :raises: :exc:`StateError` if a value is missing or negative

        """

        values = (_check_component(p, 'p'), _check_component(q, 'q'),
                  _check_component(g, 'g'))

        self._p, self._q, self._g = values
        return self

    def set_key(self, pub_key, priv_key=None):
        """Set the DSA public value and, optionally, the private value

           When no private value is given, any private value already
           set is kept.

           :raises: :exc:`StateError` if the public value is missing
                    or a value is negative

        """

        pub_key = _check_component(pub_key, 'public value')

        if priv_key is not None:
            priv_key = _check_component(priv_key, 'private value')

        self._y = pub_key

        if priv_key is not None:
            self._x = priv_key

        return self

    def public_key(self):
        """Return a new key holding only the public parts of this key"""

        key = DSAKey()
        key._p, key._q, key._g, key._y = self._components()[:4]
        return key

    def copy_from(self, other):
        """Copy all components of another DSA private key into this key

           :raises: :exc:`StateError` if this key already has any
                    component set or the other key isn't a complete
                    private key

        """

        if not isinstance(other, DSAKey):
            raise TypeError('Can only copy from a DSA key')

        if any(value is not None for value in self._components()):
            raise StateError('DSA key already initialized')

        if None in other._components():
            raise StateError('DSA key to copy is not a complete private key')

        self._p, self._q, self._g, self._y, self._x = other._components()
        self._private_flag = other._private_flag

        return self

    def clone(self):
        """Return a copy of this DSA private key"""

        return type(self)().copy_from(self)

    def export(self, cipher=None, passphrase=None):
        """Export this key in PEM format

           Keys with a private value are exported in the traditional
           "DSA PRIVATE KEY" format, encrypted if a passphrase is given.
           Other keys are exported as an X.509 "PUBLIC KEY", in which
           case the cipher and passphrase are ignored.

           :param cipher: (optional)
               The cipher to encrypt the private key with. If not
               specified, the default set by :func:`set_default_cipher`
               is used.
           :param passphrase: (optional)
               The passphrase to encrypt the private key with.
           :type cipher: `str`
           :type passphrase: `str` or `bytes`

           :returns: `bytes` representing the exported key

           :raises: | :exc:`KeyExportError` if a cipher is given without
                      a passphrase or the cipher is unknown
                    | :exc:`StateError` if the key is incomplete

        """

        if self._x is not None:
            if cipher is not None and passphrase is None:
                raise KeyExportError('A passphrase is required to encrypt '
                                     'a private key')

            params = self._export_params(True)

            if passphrase is not None:
                cipher = cipher or _default_cipher

            try:
                data = encode_private(params, cipher, passphrase)
            except KeyEncryptionError as exc:
                raise KeyExportError(str(exc)) from None

            logger.debug1('Exported DSA private key%s',
                          ' encrypted with ' + cipher if cipher else '')
        else:
            data = encode_public_info(self._export_params(False))

            logger.debug1('Exported DSA public key')

        return data

    to_pem = export

    def to_der(self):
        """Export this key in DER format

           Keys with a private value are exported in the traditional
           format and other keys as an X.509 SubjectPublicKeyInfo.
           DER output is never encrypted.

           :returns: `bytes` representing the exported key

           :raises: :exc:`StateError` if the key is incomplete

        """

        if self._x is not None:
            return encode_private(self._export_params(True), pem=False)
        else:
            return encode_public_info(self._export_params(False), pem=False)

    def sign(self, digest):
        """Sign an already computed digest

           The digest is not hashed again. Only as many leading bytes
           of it as there are in q are used.

           :param digest:
               The message digest to sign.
           :type digest: `bytes`

           :returns: `bytes` holding a DER encoded DSA signature

           :raises: | :exc:`IncompleteKeyError` if q isn't set
                    | :exc:`KeyPermissionError` if this isn't a
                      private key
                    | :exc:`CryptoOperationError` if signing fails

        """

        digest = _check_bytes(digest, 'Digest')

        if self._q is None:
            raise IncompleteKeyError('Incomplete DSA key: q is not set')

        if not self.is_private():
            raise KeyPermissionError('Private DSA key needed')

        priv_key = self._make_private_key()

        try:
            return priv_key.sign_digest(digest)
        except (ValueError, UnsupportedAlgorithm) as exc:
            raise CryptoOperationError('DSA signing failed: %s' %
                                       exc) from None

    syssign = sign

    def verify(self, digest, sig):
        """Verify a signature on an already computed digest

           :param digest:
               The message digest the signature was made on.
           :param sig:
               The DER encoded DSA signature to verify.
           :type digest: `bytes`
           :type sig: `bytes`

           :returns: `True` if the signature is valid, `False` if it
                     is well-formed but doesn't match

           :raises: :exc:`CryptoOperationError` if the signature is
                    malformed or the key can't be used to verify

        """

        digest = _check_bytes(digest, 'Digest')
        sig = _check_bytes(sig, 'Signature')

        try:
            sig_data = der_decode(sig)
        except ASN1DecodeError:
            raise CryptoOperationError('Malformed DSA signature') from None

        if (not isinstance(sig_data, tuple) or len(sig_data) != 2 or
                not all_ints(sig_data) or der_encode(sig_data) != sig):
            raise CryptoOperationError('Malformed DSA signature')

        pub_key = self._make_public_key()

        try:
            return pub_key.verify_digest(digest, sig)
        except (ValueError, UnsupportedAlgorithm) as exc:
            raise CryptoOperationError('DSA verification failed: %s' %
                                       exc) from None

    sysverify = verify


def generate_dsa_key(key_size=None):
    """Generate a new DSA private key

       This function is equivalent to :meth:`DSAKey.generate`.

    """

    return DSAKey.generate(key_size)


def import_dsa_key(data, passphrase=None):
    """Import a DSA key from its DER or PEM encoding

       This function is equivalent to :meth:`DSAKey.import_key`.

    """

    return DSAKey.import_key(data, passphrase)


def read_dsa_key(filename, passphrase=None):
    """Read a DSA key from a file

       The file may hold any of the encodings accepted by
       :meth:`DSAKey.import_key`.

       :param filename:
           The file to read the key from.
       :param passphrase: (optional)
           The passphrase to use to decrypt the key.
       :type filename: :class:`PurePath <pathlib.PurePath>` or `str`
       :type passphrase: `str` or `bytes`

       :returns: A :class:`DSAKey`

    """

    return import_dsa_key(read_file(filename), passphrase)
