"""Ramdisk root filesystem assembly (single-user and multi-user variants)."""

from osboot.rootfs.assemble import build_rootfs, generate_password_hash
from osboot.rootfs.templates import DEFAULT_ACCOUNTS, Account

__all__ = ["DEFAULT_ACCOUNTS", "Account", "build_rootfs", "generate_password_hash"]
