"""osboot - build a tiny Linux kernel and ramdisk and boot them under QEMU.

This package wraps the host toolchain (apt, make, busybox, cpio, grub-mkrescue,
qemu) behind a menu-driven pipeline for the OS-boot lab workflow.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
