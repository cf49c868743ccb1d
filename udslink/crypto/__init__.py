# SPDX-License-Identifier: GPL-2.0-or-later
# This file is part of udslink

"""
Key derivation and frame protection for UDS data frames.
"""
