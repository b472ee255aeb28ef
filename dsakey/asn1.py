# Copyright (c) 2013-2022 by Ron Frederick <ronf@timeheart.net> and others.
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

"""Utilities for encoding and decoding the ASN.1 DER used in key files

   The der_encode function takes a Python value and encodes it in DER
   format, returning a byte string. Integers, byte strings, None and
   tuples map to INTEGER, OCTET STRING, NULL and SEQUENCE. BitString
   and ObjectIdentifier cover the two other universal types which
   appear in key structures, and TaggedDERObject and RawDERObject
   carry anything else through unchanged.

   The der_decode function does the reverse. Decoding is strict:
   lengths and integers must use their minimal encoding, so that a
   decoded value always re-encodes to the exact input bytes.

"""

# ASN.1 object classes
UNIVERSAL         = 0x00
APPLICATION       = 0x01
CONTEXT_SPECIFIC  = 0x02
PRIVATE           = 0x03

# ASN.1 universal object tags
INTEGER           = 0x02
BIT_STRING        = 0x03
OCTET_STRING      = 0x04
NULL              = 0x05
OBJECT_IDENTIFIER = 0x06
SEQUENCE          = 0x10

_asn1_class = ('Universal', 'Application', 'Context-specific', 'Private')

# Deepest nesting of constructed values accepted when decoding
_MAX_DEPTH = 32

_der_class_by_tag = {}
_der_class_by_type = {}


def _encode_identifier(asn1_class, constructed, tag):
    """Encode a DER object's identifier"""

    flags = (asn1_class << 6) | (0x20 if constructed else 0x00)

    if tag < 0x1f:
        return bytes((flags | tag,))

    identifier = [tag & 0x7f]

    while tag >= 0x80:
        tag >>= 7
        identifier.append(0x80 | (tag & 0x7f))

    identifier.append(flags | 0x1f)

    return bytes(identifier[::-1])


def _encode_length(length):
    """Encode a DER length in its shortest form"""

    if length < 0x80:
        return bytes((length,))

    len_bytes = length.to_bytes((length.bit_length() + 7) // 8, 'big')
    return bytes((0x80 | len(len_bytes),)) + len_bytes


class ASN1Error(ValueError):
    """ASN.1 coding error"""


class ASN1EncodeError(ASN1Error):
    """ASN.1 DER encoding error"""


class ASN1DecodeError(ASN1Error):
    """ASN.1 DER decoding error"""


class DERTag:
    """A decorator used by classes which convert values to/from DER

       The tag given here is looked up when DER data is decoded to
       find the class which understands it. Classes which convert
       existing Python types can list them in the optional "types"
       argument, otherwise the decorated class itself is the type
       that gets encoded.

    """

    def __init__(self, tag, types=(), constructed=False):
        self._tag = tag
        self._types = types
        self._identifier = _encode_identifier(UNIVERSAL, constructed, tag)

    def __call__(self, cls):
        cls.identifier = self._identifier

        _der_class_by_tag[self._tag] = cls

        for t in self._types or (cls,):
            _der_class_by_type[t] = cls

        return cls


class RawDERObject:
    """A primitive DER object of a type this module doesn't decode"""

    def __init__(self, tag, content, asn1_class):
        self.asn1_class = asn1_class
        self.tag = tag
        self.content = content

    def __repr__(self):
        return 'RawDERObject(%s, %s, %r)' % \
                   (_asn1_class[self.asn1_class], self.tag, self.content)

    def __eq__(self, other):
        return (isinstance(other, type(self)) and
                self.asn1_class == other.asn1_class and
                self.tag == other.tag and self.content == other.content)

    def __hash__(self):
        return hash((self.asn1_class, self.tag, self.content))

    def encode_identifier(self):
        """Encode the identifier for this object"""

        return _encode_identifier(self.asn1_class, False, self.tag)

    def encode(self):
        """Encode the content of this object"""

        return self.content


class TaggedDERObject:
    """An explicitly tagged DER object

       The wrapped value is encoded with its own identifier inside
       a constructed object carrying the explicit tag. EC private
       keys use this for their optional parameters and public key.

    """

    def __init__(self, tag, value, asn1_class=CONTEXT_SPECIFIC):
        self.asn1_class = asn1_class
        self.tag = tag
        self.value = value

    def __repr__(self):
        if self.asn1_class == CONTEXT_SPECIFIC:
            return 'TaggedDERObject(%s, %r)' % (self.tag, self.value)
        else:
            return 'TaggedDERObject(%s, %s, %r)' % \
                       (_asn1_class[self.asn1_class], self.tag, self.value)

    def __eq__(self, other):
        return (isinstance(other, type(self)) and
                self.asn1_class == other.asn1_class and
                self.tag == other.tag and self.value == other.value)

    def __hash__(self):
        return hash((self.asn1_class, self.tag, self.value))

    def encode_identifier(self):
        """Encode the identifier for this object"""

        return _encode_identifier(self.asn1_class, True, self.tag)

    def encode(self):
        """Encode the content of this object"""

        return der_encode(self.value)


@DERTag(NULL, (type(None),))
class _Null:
    @staticmethod
    def encode(value):
        # pylint: disable=unused-argument
        return b''

    @classmethod
    def decode(cls, constructed, content):
        if constructed:
            raise ASN1DecodeError('NULL should not be constructed')

        if content:
            raise ASN1DecodeError('NULL should not have associated content')

        return None


@DERTag(INTEGER, (int,))
class _Integer:
    @staticmethod
    def encode(value):
        l = value.bit_length()
        l = l // 8 + 1 if l % 8 == 0 else (l + 7) // 8
        result = value.to_bytes(l, 'big', signed=True)
        return result[1:] if result.startswith(b'\xff\x80') else result

    @classmethod
    def decode(cls, constructed, content):
        if constructed:
            raise ASN1DecodeError('INTEGER should not be constructed')

        if not content:
            raise ASN1DecodeError('INTEGER should not be empty')

        if len(content) > 1 and ((content[0] == 0x00 and
                                  content[1] < 0x80) or
                                 (content[0] == 0xff and
                                  content[1] >= 0x80)):
            raise ASN1DecodeError('INTEGER is not minimally encoded')

        return int.from_bytes(content, 'big', signed=True)


@DERTag(OCTET_STRING, (bytes, bytearray))
class _OctetString:
    @staticmethod
    def encode(value):
        return bytes(value)

    @classmethod
    def decode(cls, constructed, content):
        if constructed:
            raise ASN1DecodeError('OCTET STRING should not be constructed')

        return content


@DERTag(SEQUENCE, (list, tuple), constructed=True)
class _Sequence:
    @staticmethod
    def encode(value):
        return b''.join(der_encode(item) for item in value)

    @classmethod
    def decode(cls, constructed, content, depth=0):
        if not constructed:
            raise ASN1DecodeError('SEQUENCE should always be constructed')

        offset = 0
        length = len(content)

        value = []
        while offset < length:
            item, consumed = der_decode(content[offset:], partial_ok=True,
                                        depth=depth)
            value.append(item)
            offset += consumed

        return tuple(value)


@DERTag(BIT_STRING)
class BitString:
    """A string of bits

       Only whole-byte bit strings with an optional count of unused
       trailing bits are supported, which is all key structures need.

    """

    def __init__(self, value, unused=0):
        if unused < 0 or unused > 7:
            raise ASN1EncodeError('Unused bit count must be between 0 and 7')

        if not isinstance(value, (bytes, bytearray)):
            raise ASN1EncodeError('Unexpected type of bit string value')

        if unused:
            if not value:
                raise ASN1EncodeError('Can\'t have unused bits with empty '
                                      'value')
            elif value[-1] & ((1 << unused) - 1):
                raise ASN1EncodeError('Unused bits in value should be zero')

        self.value = bytes(value)
        self.unused = unused

    def __repr__(self):
        return 'BitString(%r, %d)' % (self.value, self.unused)

    def __eq__(self, other):
        return (isinstance(other, type(self)) and
                self.value == other.value and self.unused == other.unused)

    def __hash__(self):
        return hash((self.value, self.unused))

    def encode(self):
        """Encode the content of this bit string"""

        return bytes((self.unused,)) + self.value

    @classmethod
    def decode(cls, constructed, content):
        if constructed:
            raise ASN1DecodeError('BIT STRING should not be constructed')

        if not content or content[0] > 7:
            raise ASN1DecodeError('Invalid unused bit count')

        try:
            return cls(content[1:], unused=content[0])
        except ASN1EncodeError as exc:
            raise ASN1DecodeError(str(exc)) from None


@DERTag(OBJECT_IDENTIFIER)
class ObjectIdentifier:
    """An object identifier (OID) value

       OIDs are given as a string of dot-separated integers. The
       first component must be between 0 and 2 and, when it is 0 or
       1, the second component must be between 0 and 39.

    """

    def __init__(self, value):
        self.value = value

    def __repr__(self):
        return 'ObjectIdentifier(%s)' % self.value

    def __str__(self):
        return self.value

    def __eq__(self, other):
        return isinstance(other, type(self)) and self.value == other.value

    def __hash__(self):
        return hash(self.value)

    def encode(self):
        """Encode the content of this object identifier"""

        def _bytes(component):
            result = [component & 0x7f]
            while component >= 0x80:
                component >>= 7
                result.append(0x80 | (component & 0x7f))

            return bytes(result[::-1])

        try:
            components = [int(c) for c in self.value.split('.')]
        except ValueError:
            raise ASN1EncodeError('Component values must be '
                                  'integers') from None

        if len(components) < 2:
            raise ASN1EncodeError('Object identifiers must have at least two '
                                  'components')
        elif components[0] < 0 or components[0] > 2:
            raise ASN1EncodeError('First component of object identifier must '
                                  'be between 0 and 2')
        elif components[0] < 2 and (components[1] < 0 or components[1] > 39):
            raise ASN1EncodeError('Second component of object identifier must '
                                  'be between 0 and 39')
        elif any(c < 0 for c in components[2:]):
            raise ASN1EncodeError('Components of object identifier must '
                                  'be non-negative')

        components[0:2] = [components[0]*40 + components[1]]
        return b''.join(_bytes(c) for c in components)

    @classmethod
    def decode(cls, constructed, content):
        if constructed:
            raise ASN1DecodeError('OBJECT IDENTIFIER should not be '
                                  'constructed')

        if not content:
            raise ASN1DecodeError('Empty object identifier')

        if content[-1] & 0x80:
            raise ASN1DecodeError('Incomplete object identifier')

        values = []
        component = 0

        for b in content:
            if component == 0 and b == 0x80:
                raise ASN1DecodeError('Object identifier component is '
                                      'not minimally encoded')

            component = (component << 7) | (b & 0x7f)

            if b < 0x80:
                values.append(component)
                component = 0

        first = min(values[0] // 40, 2)
        components = [first, values[0] - 40*first] + values[1:]

        return cls('.'.join(str(c) for c in components))


def der_encode(value):
    """Encode a value in DER format

       This function takes a Python value and encodes it in DER format.
       The following mapping of types is used:

       NoneType            -> NULL
       int                 -> INTEGER
       bytes, bytearray    -> OCTET STRING
       list, tuple         -> SEQUENCE
       BitString           -> BIT STRING
       ObjectIdentifier    -> OBJECT IDENTIFIER

       TaggedDERObject and RawDERObject values are encoded with the
       class and tag they carry.

    """

    t = type(value)
    if t in (RawDERObject, TaggedDERObject):
        identifier = value.encode_identifier()
        content = value.encode()
    elif t in _der_class_by_type:
        cls = _der_class_by_type[t]
        identifier = cls.identifier
        content = cls.encode(value)
    else:
        raise ASN1EncodeError('Cannot DER encode type %s' % t.__name__)

    return identifier + _encode_length(len(content)) + content


def der_decode(data, partial_ok=False, depth=0):
    """Decode a value in DER format

       This function takes a byte string in DER format and converts it
       to the Python types listed in :func:`der_encode`, with SEQUENCE
       decoding to a tuple. Explicitly tagged objects decode to
       TaggedDERObject and other primitive types to RawDERObject.

       If partial_ok is True, this function returns a tuple of the decoded
       value and number of bytes consumed. Otherwise, all data bytes must
       be consumed and only the decoded value is returned.

       Constructed values may be nested at most 32 levels deep.

    """

    if depth > _MAX_DEPTH:
        raise ASN1DecodeError('Nesting too deep')

    data = bytes(data)

    if len(data) < 2:
        raise ASN1DecodeError('Incomplete data')

    tag = data[0]
    asn1_class, constructed, tag = tag >> 6, bool(tag & 0x20), tag & 0x1f
    offset = 1
    if tag == 0x1f:
        tag = 0
        for b in data[offset:]:
            offset += 1

            if b < 0x80:
                tag |= b
                break
            else:
                tag |= b & 0x7f
                tag <<= 7
        else:
            raise ASN1DecodeError('Incomplete tag')

    if offset >= len(data):
        raise ASN1DecodeError('Incomplete data')

    length = data[offset]
    offset += 1
    if length > 0x80:
        len_size = length & 0x7f

        if offset+len_size > len(data):
            raise ASN1DecodeError('Incomplete data')

        length = int.from_bytes(data[offset:offset+len_size], 'big')
        offset += len_size

        if len_size != len(_encode_length(length)) - 1:
            raise ASN1DecodeError('Length is not minimally encoded')
    elif length == 0x80:
        raise ASN1DecodeError('Indefinite length not allowed')

    if offset+length > len(data):
        raise ASN1DecodeError('Incomplete data')

    if not partial_ok and offset+length < len(data):
        raise ASN1DecodeError('Data contains unexpected bytes at end')

    content = data[offset:offset+length]

    if asn1_class == UNIVERSAL and tag == SEQUENCE:
        value = _Sequence.decode(constructed, content, depth+1)
    elif asn1_class == UNIVERSAL and tag in _der_class_by_tag:
        value = _der_class_by_tag[tag].decode(constructed, content)
    elif constructed:
        value = TaggedDERObject(tag, der_decode(content, depth=depth+1),
                                asn1_class=asn1_class)
    else:
        value = RawDERObject(tag, content, asn1_class)

    if partial_ok:
        return value, offset+length
    else:
        return value
