# Copyright (c) 2015-2022 by Ron Frederick <ronf@timeheart.net> and others.
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

"""Unit tests for ASN.1 encoding and decoding"""

import codecs
import unittest

from dsakey.asn1 import der_encode, der_decode
from dsakey.asn1 import ASN1EncodeError, ASN1DecodeError
from dsakey.asn1 import BitString, ObjectIdentifier
from dsakey.asn1 import RawDERObject, TaggedDERObject, PRIVATE


class _TestASN1(unittest.TestCase):
    """Unit tests for ASN.1 module"""

    tests = [
        (None,                                '0500'),

        (0,                                   '020100'),
        (127,                                 '02017f'),
        (128,                                 '02020080'),
        (256,                                 '02020100'),
        (-128,                                '020180'),
        (-129,                                '0202ff7f'),
        (-256,                                '0202ff00'),

        (b'',                                 '0400'),
        (b'\0',                               '040100'),
        (b'abc',                              '0403616263'),
        (127*b'\0',                           '047f' + 127*'00'),
        (128*b'\0',                           '048180' + 128*'00'),
        (256*b'\0',                           '04820100' + 256*'00'),

        ((),                                  '3000'),
        ((1,),                                '3003020101'),
        ((1, 2),                              '3006020101020102'),
        ((1, (b'',)),                         '3007020101' + '30020400'),

        (BitString(b''),                      '030100'),
        (BitString(b'\0', 7),                 '03020700'),
        (BitString(b'\x80', 7),               '03020780'),
        (BitString(b'\x80', 6),               '03020680'),
        (BitString(b'\x80'),                  '03020080'),
        (BitString(b'\x80\x00', 7),           '0303078000'),

        (ObjectIdentifier('0.0'),             '060100'),
        (ObjectIdentifier('1.2'),             '06012a'),
        (ObjectIdentifier('1.2.840'),         '06032a8648'),
        (ObjectIdentifier('2.5'),             '060155'),
        (ObjectIdentifier('2.40'),            '060178'),
        (ObjectIdentifier('1.2.840.10040.4.1'),
                                              '06072a8648ce380401'),

        (TaggedDERObject(0, None),            'a0020500'),
        (TaggedDERObject(1, None),            'a1020500'),
        (TaggedDERObject(31, None),           'bf1f020500'),
        (TaggedDERObject(32, None),           'bf20020500'),
        (TaggedDERObject(128, None),          'bf8100020500'),
        (TaggedDERObject(0, None, PRIVATE),   'e0020500'),

        (RawDERObject(0, b'', PRIVATE),       'c000')
    ]

    encode_errors = [
        (range, [1]),                         # Unsupported type

        (BitString, [b'', 1]),                # Bit count with empty value
        (BitString, [b'', -1]),               # Invalid unused bit count
        (BitString, [b'', 8]),                # Invalid unused bit count
        (BitString, [b'\x01', 1]),            # Unused bits not zero
        (BitString, ['10']),                  # Invalid type

        (ObjectIdentifier, ['']),             # Too few components
        (ObjectIdentifier, ['1']),            # Too few components
        (ObjectIdentifier, ['1.x']),          # Non-integer component
        (ObjectIdentifier, ['-1.1']),         # First component out of range
        (ObjectIdentifier, ['3.1']),          # First component out of range
        (ObjectIdentifier, ['0.-1']),         # Second component out of range
        (ObjectIdentifier, ['0.40']),         # Second component out of range
        (ObjectIdentifier, ['1.-1']),         # Second component out of range
        (ObjectIdentifier, ['1.40']),         # Second component out of range
        (ObjectIdentifier, ['1.1.-1'])        # Later component out of range
    ]

    decode_errors = [
        '',                                   # Incomplete data
        '01',                                 # Incomplete data
        '0101',                               # Incomplete data
        '1f00',                               # Incomplete data
        '1f80',                               # Incomplete tag
        '0282',                               # Incomplete length

        '0580',                               # Indefinite length
        '0281020100',                         # Non-minimal length

        '050001',                             # Unexpected bytes at end

        '2500',                               # Constructed null
        '050100',                             # Null with content

        '2200',                               # Constructed integer
        '0200',                               # Empty integer
        '02020001',                           # Non-minimal integer
        '0202ff80',                           # Non-minimal negative integer

        '2400',                               # Constructed octet string

        '1000',                               # Non-constructed sequence
        '300402010100',                       # Incomplete sequence item

        '2300',                               # Constructed bit string
        '030108',                             # Invalid unused bit count
        '03020701',                           # Unused bits not zero

        '2600',                               # Constructed object identifier
        '0600',                               # Empty object identifier
        '060180',                             # Incomplete component
        '06022a80',                           # Incomplete component
        '0603808001'                          # Non-minimal component
    ]

    def test_asn1(self):
        """Unit test ASN.1 module"""

        for value, data in self.tests:
            data = codecs.decode(data, 'hex')

            with self.subTest(msg='encode', value=value):
                self.assertEqual(der_encode(value), data)

            with self.subTest(msg='decode', data=data):
                decoded_value = der_decode(data)
                self.assertEqual(decoded_value, value)
                self.assertEqual(hash(decoded_value), hash(value))
                self.assertEqual(repr(decoded_value), repr(value))
                self.assertEqual(str(decoded_value), str(value))

        for cls, args in self.encode_errors:
            with self.subTest(msg='encode error', cls=cls.__name__, args=args):
                with self.assertRaises(ASN1EncodeError):
                    der_encode(cls(*args))

        for data in self.decode_errors:
            with self.subTest(msg='decode error', data=data):
                with self.assertRaises(ASN1DecodeError):
                    der_decode(codecs.decode(data, 'hex'))

    def test_partial_decode(self):
        """Unit test decoding a value followed by other data"""

        value, end = der_decode(b'\x02\x01\x05\x05\x00', partial_ok=True)

        self.assertEqual(value, 5)
        self.assertEqual(end, 3)

    def test_large_integer(self):
        """Unit test round trip of integers the size of DSA values"""

        for value in (1 << 1023, (1 << 2048) - 1, -(1 << 255)):
            with self.subTest(value=value):
                self.assertEqual(der_decode(der_encode(value)), value)

    def test_nesting(self):
        """Unit test limit on nesting of constructed values"""

        def _nest(data, levels, identifier=b'\x30'):
            for _ in range(levels):
                data = identifier + der_encode(data)[1:]

            return data

        value = None
        for _ in range(32):
            value = (value,)

        self.assertEqual(der_decode(_nest(b'\x05\x00', 32)), value)

        for levels in (33, 2000):
            with self.subTest(levels=levels):
                with self.assertRaises(ASN1DecodeError):
                    der_decode(_nest(b'\x05\x00', levels))

        with self.assertRaises(ASN1DecodeError):
            der_decode(_nest(b'\x05\x00', 2000, b'\xa0'))
