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

"""Miscellaneous utility classes and functions"""

from collections import OrderedDict
from pathlib import Path


def all_ints(seq):
    """Return if a sequence contains all integers"""

    return all(isinstance(i, int) for i in seq)


def read_file(filename, mode='rb'):
    """Read from a file with home directory expansion"""

    with open(Path(filename).expanduser(), mode) as f:
        return f.read()


class Record:
    """General-purpose record type with fixed set of fields"""

    __slots__ = OrderedDict()

    def __init__(self, *args, **kwargs):
        for k, v in self.__slots__.items():
            setattr(self, k, v)

        for k, v in zip(self.__slots__, args):
            setattr(self, k, v)

        for k, v in kwargs.items():
            setattr(self, k, v)

    def __repr__(self):
        return '%s(%s)' % (type(self).__name__,
                           ', '.join('%s=%r' % (k, getattr(self, k))
                                     for k in self.__slots__))


class DSAError(ValueError):
    """General DSA key error

       This is the base class of all the errors raised by :class:`DSAKey`
       operations, so a single except clause can catch any of them.

    """


class StateError(DSAError):
    """Key state error

       This exception is raised when an operation isn't valid for the
       current state of a key, such as copying into a key which has
       already been populated or setting a parameter triple with one
       of its values missing.

    """


class FormatError(DSAError):
    """Key format error

       This exception is raised when the data passed to a key import
       function couldn't be decoded as any of the recognized key
       encodings.

    """


class TypeMismatchError(DSAError):
    """Key type mismatch error

       This exception is raised when data was successfully decoded as a
       key, but of an algorithm other than DSA.

       :param algorithm:
           The short name of the algorithm which was decoded
       :type algorithm: `str`

    """

    def __init__(self, algorithm):
        super().__init__('Incorrect key type: %s' % algorithm)
        self.algorithm = algorithm


class IncompleteKeyError(DSAError):
    """Incomplete key error

       This exception is raised when a component needed by an operation,
       such as the subgroup order q needed for signing, isn't set.

    """


class KeyPermissionError(DSAError, PermissionError):
    """Private key required error

       This exception is raised when an operation which needs private
       key material is attempted on a public key.

    """


class CryptoOperationError(DSAError):
    """Cryptographic operation error

       This exception is raised when the underlying cryptographic
       library fails to complete an operation for a reason not covered
       by the other exceptions, including a verify call given a
       malformed signature.

    """


class KeyGenerationError(DSAError):
    """Key generation error

       This exception is raised when a key of the requested size can't
       be generated.

    """


class KeyExportError(DSAError):
    """Key export error

       This exception is raised when the arguments passed to an export
       function can't be honored, such as a cipher given without a
       passphrase.

    """
