"""Configuration settings for osboot.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PACKAGES = [
    "qemu-system",
    "build-essential",
    "bison",
    "flex",
    "libelf-dev",
    "libssl-dev",
    "bc",
    "grub-common",
    "grub-pc",
    "libncurses-dev",
    "mtools",
    "grub-pc-bin",
    "xorriso",
    "tmux",
    "busybox-static",
    "wget",
    "cpio",
    "gzip",
    "openssl",
]


def _default_work_dir() -> Path:
    """Return the default work directory."""
    return Path.cwd() / "osboot"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the OSBOOT_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="OSBOOT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    work_dir: Path = Field(
        default_factory=_default_work_dir,
        description="Directory holding every generated artifact",
    )
    busybox_path: Path = Field(
        default=Path("/usr/bin/busybox"),
        description="Statically linked busybox binary copied into ramdisks",
    )
    device_dir: Path = Field(
        default=Path("/dev"),
        description="Host device directory the ramdisk device nodes come from",
    )

    # Kernel
    kernel_version: str = Field(
        default="6.1.1",
        pattern=r"^\d+\.\d+(\.\d+)?$",
        description="Linux kernel release to download and build",
    )
    kernel_base_url: str = Field(
        default="https://cdn.kernel.org/pub/linux/kernel",
        description="Base URL of the kernel.org mirror",
    )
    verify_checksum: bool = Field(
        default=True,
        description="Verify the source archive against sha256sums.asc",
    )
    build_jobs: int | None = Field(
        default=None,
        ge=1,
        description="Parallel make jobs (uses CPU count if not set)",
    )

    # Host
    packages: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PACKAGES),
        min_length=1,
        description="Host packages installed by the dependency stage",
    )
    use_sudo: bool = Field(
        default=True,
        description="Prefix privileged commands with sudo when not root",
    )

    # Multi-user ramdisk
    root_password: SecretStr = Field(
        default=SecretStr("password123"),
        description="Password shared by the demo accounts",
    )
    hostname: str = Field(default="multilinux", description="Ramdisk hostname")
    getty_retries: int = Field(
        default=5,
        ge=1,
        le=100,
        description="How many times init respawns getty before powering off",
    )

    # Emulator
    qemu_binary: str = Field(default="qemu-system-x86_64")
    qemu_smp: int = Field(default=2, ge=1, description="Virtual CPUs")
    qemu_memory_mb: int = Field(default=256, ge=64, description="Guest memory")
    qemu_display: str = Field(default="curses", description="QEMU display backend")

    # Boot loader
    grub_timeout: int = Field(default=5, ge=0, description="GRUB menu timeout")

    # Operational
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    download_timeout: int = Field(
        default=3600,
        ge=60,
        description="Timeout for the kernel source download (seconds)",
    )

    @field_validator("work_dir")
    @classmethod
    def resolve_work_dir(cls, v: Path) -> Path:
        """Store the work directory as an absolute path."""
        return v.expanduser().resolve()

    @field_validator("root_password")
    @classmethod
    def validate_root_password(cls, v: SecretStr) -> SecretStr:
        """Reject an empty password."""
        if not v.get_secret_value():
            raise ValueError("root_password must not be empty")
        return v


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    The root password is masked.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["DEFAULT_PACKAGES", "Settings", "get_settings", "print_settings_json"]
