# SPDX-License-Identifier: GPL-2.0-or-later
# This file is part of udslink

"""
Layers defined in udslink.
"""
