"""Text payloads written into ramdisk images.

Init scripts and account files are rendered from explicit parameters
(password hash, hostname, retry count) rather than interpolated into a
nested shell script.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Account:
    """A login account in the multi-user ramdisk."""

    name: str
    uid: int
    gid: int
    home: str
    shell: str = "/bin/sh"

    def passwd_line(self, password_hash: str) -> str:
        return (
            f"{self.name}:{password_hash}:{self.uid}:{self.gid}:"
            f"{self.name}:{self.home}:{self.shell}"
        )


DEFAULT_ACCOUNTS: tuple[Account, ...] = (
    Account(name="root", uid=0, gid=0, home="/root"),
    Account(name="user1", uid=1001, gid=100, home="/home/user1"),
)

# (name, gid, members)
DEFAULT_GROUPS: tuple[tuple[str, int, tuple[str, ...]], ...] = (
    ("root", 0, ()),
    ("bin", 1, ("root",)),
    ("sys", 2, ("root",)),
    ("tty", 5, ("root", "user1")),
    ("disk", 6, ("root",)),
    ("wheel", 10, ("root", "user1")),
    ("users", 100, ("user1",)),
)

GETTY_TTY = "tty1"
GETTY_BAUD = 115200
GETTY_TERM = "vt100"


def render_single_init() -> str:
    """Init for the single-user ramdisk: mount pseudo filesystems, drop to a shell."""
    return """#!/bin/sh
echo "Starting Single User System..."
/bin/mount -t proc none /proc
/bin/mount -t sysfs none /sys
echo "Welcome to Single User BusyBox System!"
exec /bin/sh
"""


def render_multi_init(
    accounts: tuple[Account, ...] = DEFAULT_ACCOUNTS,
    getty_retries: int = 5,
) -> str:
    """Init for the multi-user ramdisk.

    Spawns getty on the console up to getty_retries times, then powers the
    machine off so init never exits (which would panic the kernel).
    """
    if getty_retries < 1:
        raise ValueError("getty_retries must be at least 1")
    users = " or ".join(a.name for a in accounts)
    return f"""#!/bin/sh
echo "Starting Multi User System..."
/bin/mount -t proc none /proc
/bin/mount -t sysfs none /sys
/bin/mount -t devtmpfs none /dev 2>/dev/null || true
/bin/hostname -F /etc/hostname 2>/dev/null || true

echo "Multi User Linux System"
echo "Login as: {users}"
echo ""

attempt=0
while [ "$attempt" -lt {getty_retries} ]; do
    /bin/getty -L {GETTY_TTY} {GETTY_BAUD} {GETTY_TERM}
    attempt=$((attempt + 1))
    sleep 1
done

echo "getty exited {getty_retries} times, powering off"
/bin/poweroff -f
"""


def render_passwd(password_hash: str, accounts: tuple[Account, ...] = DEFAULT_ACCOUNTS) -> str:
    """Render /etc/passwd with every account sharing password_hash."""
    if not password_hash or ":" in password_hash or "\n" in password_hash:
        raise ValueError("password hash must be non-empty and contain no ':' or newline")
    return "".join(f"{a.passwd_line(password_hash)}\n" for a in accounts)


def render_group(
    groups: tuple[tuple[str, int, tuple[str, ...]], ...] = DEFAULT_GROUPS,
) -> str:
    """Render /etc/group."""
    return "".join(f"{name}:x:{gid}:{','.join(members)}\n" for name, gid, members in groups)


def render_hostname(hostname: str) -> str:
    return f"{hostname}\n"


__all__ = [
    "DEFAULT_ACCOUNTS",
    "DEFAULT_GROUPS",
    "Account",
    "render_group",
    "render_hostname",
    "render_multi_init",
    "render_passwd",
    "render_single_init",
]
