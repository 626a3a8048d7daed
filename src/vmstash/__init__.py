# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.18
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/vmstash/__init__.py

"""vmstash: LVM snapshot backups of Proxmox guests into restic."""

__version__ = "0.1.0"
