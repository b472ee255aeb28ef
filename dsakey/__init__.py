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

"""DSA key objects on top of PyCA cryptography"""

from .version import __author__, __author_email__, __version__

from .dsa import DSAKey
from .dsa import generate_dsa_key, import_dsa_key, read_dsa_key
from .dsa import set_default_cipher, set_default_key_size

from .logging import logger, set_debug_level, set_log_level

from .misc import DSAError, StateError, FormatError, TypeMismatchError
from .misc import IncompleteKeyError, KeyPermissionError
from .misc import CryptoOperationError, KeyGenerationError, KeyExportError

from .pbe import KeyEncryptionError
