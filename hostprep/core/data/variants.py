"""
Variant registry — every supported platform, in priority order.

Pure data. The first variant whose predicate matches the host wins,
so specialised profiles (Raspberry Pi) sit before the generic variant
of the same family. Adding a platform means adding a Variant here.

Command arguments may use ``{requirements}``, ``{env_path}``,
``{python}`` and ``{app_name}`` placeholders; they are filled from the
provisioning config when the step runs.
"""

from __future__ import annotations

from hostprep.core.models.host import HostSignals
from hostprep.core.models.step import Criticality, Step, StepKind, Variant
from hostprep.core.services.host_signals import (
    ARCH_RELEASE,
    FEDORA_RELEASE,
    GENTOO_RELEASE,
    MANJARO_RELEASE,
    OS_RELEASE,
    SLACKWARE_VERSION,
)

RASPBERRY_PI_HINT = "raspberry-pi"

# Flags for a headless board: no browser, bind to the board's address.
_HEADLESS_START_FLAGS = ("--disable-open-browser", "-k", "$IP", "-q", "8888", "-p", "12345")


def _sudo_notice(packages: list[str], *extra: str) -> Step:
    listed = " ".join([*packages, *extra])
    return Step(
        id="sudo-notice",
        kind=StepKind.INFO,
        message=(
            "In order to install, this script will install the following "
            "requirements in your system:\n"
            f"  {listed}\n"
            "Note: this script requires sudo for the installation."
        ),
    )


def _environment(**kwargs) -> Step:
    return Step(id="environment", kind=StepKind.ENVIRONMENT, label="Build application environment", **kwargs)


# ── Predicates ──────────────────────────────────────────────────


def is_macos(s: HostSignals) -> bool:
    return s.is_macos


def is_raspberry_pi_arch(s: HostSignals) -> bool:
    return (
        s.is_linux
        and s.has_marker(ARCH_RELEASE)
        and ("alarmpi" in s.kernel or s.hinted(RASPBERRY_PI_HINT))
    )


def is_arch(s: HostSignals) -> bool:
    return s.is_linux and (s.has_marker(ARCH_RELEASE) or s.has_marker(MANJARO_RELEASE))


def is_gentoo(s: HostSignals) -> bool:
    return s.is_linux and s.has_marker(GENTOO_RELEASE)


def is_fedora(s: HostSignals) -> bool:
    return s.is_linux and s.has_marker(FEDORA_RELEASE)


def is_slackware(s: HostSignals) -> bool:
    return s.is_linux and s.has_marker(SLACKWARE_VERSION)


def is_raspbian(s: HostSignals) -> bool:
    return s.is_linux and (
        s.marker_contains(OS_RELEASE, "Raspbian") or s.hinted(RASPBERRY_PI_HINT)
    )


def is_linux(s: HostSignals) -> bool:
    return s.is_linux


# ── macOS (Homebrew) ────────────────────────────────────────────

_BREW_TOOLS = ["gpg", "sqlite3", "wget", "openssl", "autoenv"]

# Unset for every brew invocation.
_BREW_ENV_UNSET = ["CPPFLAGS", "DYLD_LIBRARY_PATH"]

MACOS = Variant(
    name="macos",
    label="OS X",
    predicate=is_macos,
    start_flags=("--disable-sqlite-crypt",),
    steps=(
        # Maintenance applies only to a brew installed before this run.
        Step(
            id="brew-update",
            kind=StepKind.COMMAND,
            label="Update Homebrew",
            when_present="brew",
            command=["brew", "update"],
            env_unset=_BREW_ENV_UNSET,
        ),
        Step(
            id="brew-doctor",
            kind=StepKind.COMMAND,
            label="Check Homebrew installation",
            when_present="brew",
            command=["brew", "doctor"],
            env_unset=_BREW_ENV_UNSET,
            failure_hint="'brew doctor' did not exit cleanly! This may be okay. Read above.",
        ),
        Step(
            id="brew-upgrade",
            kind=StepKind.CONFIRM,
            label="Upgrade Homebrew packages",
            when_present="brew",
            prompt=(
                "If your homebrew packages are outdated, we recommend upgrading them now. "
                "This may take some time.\n"
                "We will only upgrade the packages needed to run the application.\n"
                "Do you want to do this?"
            ),
            default_yes=False,
            then=[
                Step(
                    id="brew-upgrade-packages",
                    kind=StepKind.COMMAND,
                    command=["brew", "upgrade", *_BREW_TOOLS],
                    env_unset=_BREW_ENV_UNSET,
                    failure_hint=(
                        "There were errors when attempting 'brew upgrade', "
                        "there could be issues with the installation."
                    ),
                ),
            ],
        ),
        Step(
            id="brew-cleanup",
            kind=StepKind.COMMAND,
            label="Clean up Homebrew",
            when_present="brew",
            command=["brew", "cleanup"],
            env_unset=_BREW_ENV_UNSET,
            ask_to_continue=False,
        ),
        Step(
            id="install-brew",
            kind=StepKind.COMMAND,
            label="Install Homebrew",
            when_missing="brew",
            command=[
                "/bin/bash",
                "-c",
                '/bin/bash -c "$(curl -fsSL https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh)"',
            ],
            criticality=Criticality.FATAL,
        ),
        Step(
            id="brew-python",
            kind=StepKind.PACKAGE_INSTALL,
            label="Install Homebrew Python",
            manager="brew",
            packages=["python"],
        ),
        Step(
            id="brew-tools",
            kind=StepKind.PACKAGE_INSTALL,
            label="Install missing tools",
            manager="brew",
            packages=_BREW_TOOLS,
            skip_present=True,
        ),
        Step(
            id="install-virtualenv",
            kind=StepKind.COMMAND,
            label="Install virtualenv",
            when_missing="virtualenv",
            command=["pip3", "install", "virtualenv"],
            ask_to_continue=False,
            failure_hint="Falling back to the interpreter's built-in venv module.",
        ),
        # Build against brew's openssl instead of `brew link --force`.
        _environment(brew_prefix="openssl"),
    ),
)


# ── Arch Linux on a Raspberry Pi ────────────────────────────────

_RASPI_ARCH_PACKAGES = [
    "base-devel", "curl", "wget", "python", "python-pip",
    "rng-tools", "libjpeg-turbo", "sqlite", "openssl", "libunistring",
]

RASPBERRY_PI_ARCH = Variant(
    name="raspberry-pi-arch",
    label="Raspberry Pi Arch Linux",
    predicate=is_raspberry_pi_arch,
    start_flags=_HEADLESS_START_FLAGS,
    address_probe="IP=$(ip -4 -o addr show eth0 | awk '{print $4}' | cut -d/ -f1)",
    steps=(
        _sudo_notice(_RASPI_ARCH_PACKAGES),
        Step(
            id="pacman-refresh",
            kind=StepKind.COMMAND,
            label="Refresh package databases",
            command=["pacman", "--sync", "--refresh"],
            needs_sudo=True,
        ),
        Step(
            id="system-packages",
            kind=StepKind.PACKAGE_INSTALL,
            label="Install system packages",
            manager="pacman",
            packages=_RASPI_ARCH_PACKAGES,
        ),
        Step(
            id="pip-notice",
            kind=StepKind.INFO,
            message="Notice : pip install requires 10~30 minutes to complete.",
        ),
        Step(
            id="pip-install",
            kind=StepKind.CONFIRM,
            label="Install application dependencies",
            prompt="Are you sure?",
            default_yes=True,
            then=[
                Step(
                    id="pip-requirements",
                    kind=StepKind.COMMAND,
                    command=["pip", "install", "--requirement", "{requirements}"],
                    criticality=Criticality.FATAL,
                ),
            ],
        ),
    ),
)


# ── Arch Linux / Manjaro ────────────────────────────────────────

_ARCH_PACKAGES = [
    "python", "python-pip", "python-virtualenv", "rng-tools",
    "libjpeg-turbo", "sqlite", "openssl",
]

ARCH = Variant(
    name="arch",
    label="Arch Linux",
    predicate=is_arch,
    steps=(
        _sudo_notice(_ARCH_PACKAGES),
        Step(
            id="system-upgrade",
            kind=StepKind.CONFIRM,
            label="Upgrade the system",
            prompt=(
                "Some packages and dependencies may fail to install if your package "
                "list is out of date.\nWould you like to upgrade your system now?"
            ),
            default_yes=True,
            then=[
                Step(
                    id="pacman-sysupgrade",
                    kind=StepKind.COMMAND,
                    command=["pacman", "--sync", "--refresh", "--sysupgrade"],
                    needs_sudo=True,
                ),
            ],
        ),
        Step(
            id="system-packages",
            kind=StepKind.PACKAGE_INSTALL,
            label="Install system packages",
            manager="pacman",
            packages=_ARCH_PACKAGES,
        ),
        _environment(),
    ),
)


# ── Gentoo (Portage) ────────────────────────────────────────────

_PORTAGE_PACKAGES = [
    "dev-lang/python", "dev-python/pip", "sys-apps/rng-tools", "sys-devel/gcc",
    "media-libs/libjpeg-turbo", "dev-db/sqlite", "dev-libs/openssl", "dev-python/virtualenv",
]

GENTOO = Variant(
    name="gentoo",
    label="Gentoo",
    predicate=is_gentoo,
    steps=(
        _sudo_notice(_PORTAGE_PACKAGES),
        Step(
            id="system-packages",
            kind=StepKind.PACKAGE_INSTALL,
            label="Install system packages",
            manager="emerge",
            packages=_PORTAGE_PACKAGES,
        ),
        _environment(),
    ),
)


# ── Fedora ──────────────────────────────────────────────────────

_FEDORA_PACKAGES = [
    "kernel-devel", "rng-tools", "openssl", "openssl-libs", "openssl-devel",
    "openjpeg2", "openjpeg2-devel", "make", "python3", "python3-pip",
    "python3-virtualenv", "python3-devel", "python3-zmq", "zeromq", "zeromq-devel",
    "python3-pyOpenSSL",
]

FEDORA = Variant(
    name="fedora",
    label="Fedora",
    predicate=is_fedora,
    steps=(
        _sudo_notice(_FEDORA_PACKAGES),
        Step(
            id="system-packages",
            kind=StepKind.PACKAGE_INSTALL,
            label="Install system packages",
            manager="dnf",
            packages=_FEDORA_PACKAGES,
        ),
        _environment(),
    ),
)


# ── Slackware ───────────────────────────────────────────────────

_SBOPKG = "/usr/sbin/sbopkg"

SLACKWARE = Variant(
    name="slackware",
    label="Slackware",
    predicate=is_slackware,
    steps=(
        _sudo_notice(["python3", "pysetuptools", "pip", "virtualenv", "rng-tools", "libjpeg-turbo", "sqlite", "openssl"]),
        Step(
            id="slackpkg-update",
            kind=StepKind.COMMAND,
            label="Update package lists",
            command=["/usr/sbin/slackpkg", "update"],
            needs_sudo=True,
        ),
        Step(
            id="python",
            kind=StepKind.PACKAGE_INSTALL,
            label="Install Python",
            manager="slackpkg",
            packages=["python3"],
            when_missing="python3",
        ),
        Step(
            id="pip",
            kind=StepKind.PACKAGE_INSTALL,
            label="Install pip from SlackBuilds",
            manager="sbopkg",
            packages=["pysetuptools", "pip"],
            requires=_SBOPKG,
            when_missing="pip",
            criticality=Criticality.FATAL,
            failure_hint=(
                "Please install sbopkg for ease of dependency installation from sbopkgs. "
                "Be sure to run sbopkg and sync before retrying this install."
            ),
        ),
        Step(
            id="virtualenv",
            kind=StepKind.COMMAND,
            label="Install virtualenv",
            command=["pip", "install", "virtualenv"],
            needs_sudo=True,
            when_missing="virtualenv",
        ),
        Step(
            id="rng-tools",
            kind=StepKind.COMMAND,
            label="Build rng-tools from source",
            when_missing="rngd",
            command=[
                "sh",
                "-c",
                "wget http://sourceforge.net/projects/gkernel/files/rng-tools/5/rng-tools-5.tar.gz"
                " && tar -xvf rng-tools-5.tar.gz"
                " && cd rng-tools-5 && ./configure && make && sudo make install",
            ],
        ),
        Step(
            id="system-packages",
            kind=StepKind.PACKAGE_INSTALL,
            label="Install system libraries",
            manager="slackpkg",
            packages=["libjpeg-turbo", "sqlite", "openssl"],
        ),
        _environment(),
    ),
)


# ── Raspbian ────────────────────────────────────────────────────

_RASPBIAN_PACKAGES = [
    "python3-pip", "build-essential", "rng-tools", "alien",
    "openssl", "libssl-dev", "python3-dev", "libjpeg-dev", "sqlite3",
]

RASPBIAN = Variant(
    name="raspbian",
    label="Raspberry Pi Raspbian",
    predicate=is_raspbian,
    start_flags=_HEADLESS_START_FLAGS,
    address_probe="IP=$(hostname -I | awk '{print $1}')",
    steps=(
        _sudo_notice(_RASPBIAN_PACKAGES),
        Step(
            id="system-packages",
            kind=StepKind.PACKAGE_INSTALL,
            label="Install system packages",
            manager="apt",
            packages=_RASPBIAN_PACKAGES,
        ),
        Step(
            id="pip-notice",
            kind=StepKind.INFO,
            message="Notice : pip install requires 2~3 hours to complete.",
        ),
        Step(
            id="pip-install",
            kind=StepKind.CONFIRM,
            label="Install application dependencies",
            prompt="Are you sure?",
            default_yes=True,
            then=[
                Step(
                    id="pip-requirements",
                    kind=StepKind.COMMAND,
                    command=["pip", "install", "--requirement", "{requirements}"],
                    needs_sudo=True,
                    criticality=Criticality.FATAL,
                ),
            ],
        ),
    ),
)


# ── Ubuntu / Debian / anything else on Linux ────────────────────

_APT_PACKAGES = [
    "python3-pip", "build-essential", "rng-tools", "python3-dev", "libjpeg-dev",
    "sqlite3", "openssl", "alien", "libssl-dev", "python3-virtualenv",
    "python3-venv", "lintian", "libjs-jquery",
]

UBUNTU = Variant(
    name="ubuntu",
    label="Ubuntu or other",
    predicate=is_linux,
    steps=(
        _sudo_notice(_APT_PACKAGES),
        Step(
            id="apt-update",
            kind=StepKind.COMMAND,
            label="Update package lists",
            command=["apt-get", "--quiet", "update"],
            needs_sudo=True,
            ask_to_continue=False,
            failure_hint="apt-get update failed. Continuing...",
        ),
        Step(
            id="system-packages",
            kind=StepKind.PACKAGE_INSTALL,
            label="Install system packages",
            manager="apt",
            packages=_APT_PACKAGES,
        ),
        _environment(),
    ),
)


VARIANTS: tuple[Variant, ...] = (
    MACOS,
    RASPBERRY_PI_ARCH,
    ARCH,
    GENTOO,
    FEDORA,
    SLACKWARE,
    RASPBIAN,
    UBUNTU,
)
