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

"""Utility functions for unit tests"""

import os
import subprocess
import tempfile
import unittest

from cryptography.hazmat.primitives.asymmetric import dsa

from dsakey import DSAKey
from dsakey.logging import logger


_test_keys = {}


def get_test_key(key_size=1024, key_id=0):
    """Generate or return a DSA key with the requested size"""

    params = (key_size, key_id)

    try:
        key = _test_keys[params]
    except KeyError:
        key = DSAKey.generate(key_size)
        _test_keys[params] = key

    return key.clone()


def make_pyca_key(key):
    """Return the PyCA private or public key matching a DSA key"""

    params = dsa.DSAParameterNumbers(key.p, key.q, key.g)
    pub = dsa.DSAPublicNumbers(key.public_component, params)

    if key.private_component is not None:
        return dsa.DSAPrivateNumbers(key.private_component,
                                     pub).private_key()
    else:
        return pub.public_key()


def run(cmd):
    """Run a shell commands and return the output"""

    try:
        return subprocess.check_output(cmd, shell=True,
                                       stderr=subprocess.STDOUT)
    except subprocess.CalledProcessError as exc: # pragma: no cover
        logger.error('Error running command: %s' % cmd)
        logger.error(exc.output.decode())
        raise


def write_file(filename, data):
    """Write data to a file"""

    with open(filename, 'wb') as f:
        f.write(data)


def read_file(filename):
    """Read data from a file"""

    with open(filename, 'rb') as f:
        return f.read()


class TempDirTestCase(unittest.TestCase):
    """Unit test class which operates in a temporary directory"""

    _tempdir = None
    _prev_dir = None

    @classmethod
    def setUpClass(cls):
        """Create temporary directory and set it as current directory"""

        cls._prev_dir = os.getcwd()
        cls._tempdir = tempfile.TemporaryDirectory()
        os.chdir(cls._tempdir.name)

    @classmethod
    def tearDownClass(cls):
        """Clean up temporary directory"""

        os.chdir(cls._prev_dir)
        cls._tempdir.cleanup()
