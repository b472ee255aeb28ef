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

"""A shim around PyCA for DSA public and private keys"""

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric import dsa
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed

from .misc import PyCAKey, prehash_algs


# Short variable names are used here, matching names in FIPS 186
# pylint: disable=invalid-name


def _prehash(q, digest):
    """Fit a raw digest to the size PyCA expects for this subgroup

       Like OpenSSL's DSA_sign, only the leftmost bytes of the digest
       up to the length of q are used. Shorter digests are padded with
       leading zeroes, which leaves their integer value unchanged.

    """

    size = (q.bit_length() + 7) // 8
    hash_alg = prehash_algs.get(size)

    if not hash_alg:
        raise ValueError('Unsupported DSA subgroup size: %d bits' %
                         q.bit_length())

    return bytes(digest[:size]).rjust(size, b'\0'), Prehashed(hash_alg())


class _DSAKey(PyCAKey):
    """Base class for shim around PyCA for DSA keys"""

    def __init__(self, pyca_key, params, pub, priv=None):
        super().__init__(pyca_key)

        self._params = params
        self._pub = pub
        self._priv = priv

    @property
    def p(self):
        """Return the DSA public modulus"""

        return self._params.p

    @property
    def q(self):
        """Return the DSA sub-group order"""

        return self._params.q

    @property
    def g(self):
        """Return the DSA generator"""

        return self._params.g

    @property
    def y(self):
        """Return the DSA public value"""

        return self._pub.y

    @property
    def x(self):
        """Return the DSA private value"""

        return self._priv.x if self._priv else None


class DSAPrivateKey(_DSAKey):
    """A shim around PyCA for DSA private keys"""

    @classmethod
    def construct(cls, p, q, g, y, x):
        """Construct a DSA private key"""

        params = dsa.DSAParameterNumbers(p, q, g)
        pub = dsa.DSAPublicNumbers(y, params)
        priv = dsa.DSAPrivateNumbers(x, pub)
        priv_key = priv.private_key()

        return cls(priv_key, params, pub, priv)

    @classmethod
    def generate(cls, key_size):
        """Generate a new DSA private key"""

        priv_key = dsa.generate_private_key(key_size)
        priv = priv_key.private_numbers()
        pub = priv.public_numbers
        params = pub.parameter_numbers

        return cls(priv_key, params, pub, priv)

    def sign_digest(self, digest):
        """Sign an already computed digest, returning a DER signature"""

        data, hash_alg = _prehash(self.q, digest)
        return self.pyca_key.sign(data, hash_alg)


class DSAPublicKey(_DSAKey):
    """A shim around PyCA for DSA public keys"""

    @classmethod
    def construct(cls, p, q, g, y):
        """Construct a DSA public key"""

        params = dsa.DSAParameterNumbers(p, q, g)
        pub = dsa.DSAPublicNumbers(y, params)
        pub_key = pub.public_key()

        return cls(pub_key, params, pub)

    def verify_digest(self, digest, sig):
        """Verify a DER signature on an already computed digest"""

        data, hash_alg = _prehash(self.q, digest)

        try:
            self.pyca_key.verify(sig, data, hash_alg)
            return True
        except InvalidSignature:
            return False
