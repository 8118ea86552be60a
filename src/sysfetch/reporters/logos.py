"""ASCII logos and their selection.

Logos come from an optional user directory of ``<key>.txt`` files first and
the built-in catalog second. Selection walks from the most specific key
(the distro) to the family's generic art and finally a universal default.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from rich.cells import cell_len

from sysfetch.facts.errors import LogoError
from sysfetch.hardware.profile import Family, PlatformProfile

logger = logging.getLogger(__name__)

DEFAULT_KEY = "default"


@dataclass(frozen=True)
class ArtBlock:
    """A logo: its lines plus the display width and height they occupy."""

    lines: Tuple[str, ...]
    width: int
    height: int
    key: str = ""

    @classmethod
    def from_text(cls, text: str, key: str = "") -> "ArtBlock":
        lines = tuple(line.rstrip() for line in text.expandtabs(4).splitlines())
        while lines and not lines[-1]:
            lines = lines[:-1]
        while lines and not lines[0]:
            lines = lines[1:]
        width = max((cell_len(line) for line in lines), default=0)
        return cls(lines=lines, width=width, height=len(lines), key=key)

    @classmethod
    def empty(cls) -> "ArtBlock":
        return cls(lines=(), width=0, height=0, key="none")


BUILTIN_LOGOS: Dict[str, str] = {
    "arch": """
      /\\
     /  \\
    /\\   \\
   /  __  \\
  /  (  )  \\
 / __|  |__\\\\
/.`        `.\\
""",
    "debian": """
  _____
 /  __ \\
|  /    |
|  \\___-
-_
  --_
""",
    "ubuntu": """
         _
     ---(_)
 _/  ---  \\
(_) |   |
  \\  --- _/
     ---(_)
""",
    "fedora": """
      _____
     /   __)\\
     |  /  \\ \\
  ___|  |__/ /
 / (_    _)_/
/ /  |  |
\\ \\__/  |
 \\(_____/
""",
    "linuxmint": """
 _____________
|_            \\
  |  | _____  |
  |  | | | |  |
  |  | | | |  |
  |  \\_____/  |
  \\___________/
""",
    "alpine": """
   /\\ /\\
  // \\  \\
 //   \\  \\
///    \\  \\
//      \\  \\
         \\
""",
    "nixos": """
  \\\\  \\\\ //
 ==\\\\__\\\\/ //
   //   \\\\//
==//     //==
 //\\\\___//
// /\\\\  \\\\==
  // \\\\  \\\\
""",
    "gentoo": """
 _-----_
(       \\
\\    0   \\
 \\        )
 /      _/
(     _-
\\____-
""",
    "opensuse": """
  _______
__|   __ \\
     / .\\ \\
     \\__/ |
   _______|
   \\_______
__________/
""",
    "linux": """
    .--.
   |o_o |
   |:_/ |
  //   \\ \\
 (|     | )
/'\\_   _/`\\
\\___)=(___/
""",
    "freebsd": """
/\\,-'''''-,/\\
\\_)       (_/
|           |
|           |
 ;         ;
  '-_____-'
""",
    "openbsd": """
      _____
    \\-     -/
 \\_/         \\
 |        O O |
 |_  <   )  3 )
 / \\         /
    /-_____-\\
""",
    "netbsd": """
\\\\\\`-______,----__
 \\\\        __,---\\`_
  \\\\       \\`.____
   \\\\-______,----\\`-
    \\\\
     \\\\
      \\\\
""",
    "bsd": """
 ___   ___ ___
| _ ) / __|   \\
| _ \\ \\__ \\ |) |
|___/ |___/___/
""",
    "macos": """
        .:'
    __ :'__
 .'`  `-'  ``.
:          .-'
:         :
 :         `-;
  `.__.-.__.'
""",
    DEFAULT_KEY: """
 _______
|  ___  |
| |   | |
| |___| |
|_______|
 _|___|_
""",
}

# Family -> generic art used when no distro-specific art matches.
FAMILY_LOGOS: Dict[Family, str] = {
    Family.LINUX: "linux",
    Family.FREEBSD: "freebsd",
    Family.OPENBSD: "openbsd",
    Family.NETBSD: "netbsd",
    Family.MACOS: "macos",
}

# Distro IDs that share art with another key.
ALIASES: Dict[str, str] = {
    "archlinux": "arch",
    "endeavouros": "arch",
    "cachyos": "arch",
    "manjaro": "arch",
    "mint": "linuxmint",
    "opensuse-tumbleweed": "opensuse",
    "opensuse-leap": "opensuse",
    "pop": "ubuntu",
    "elementary": "ubuntu",
    "kubuntu": "ubuntu",
}


def candidate_keys(profile: PlatformProfile) -> List[str]:
    """Logo keys to try for ``profile``, most specific first."""
    keys: List[str] = []
    if profile.distro:
        distro = profile.distro.lower()
        keys.append(distro)
        if distro in ALIASES:
            keys.append(ALIASES[distro])
        prefix = distro.split("-", 1)[0]
        if prefix != distro:
            keys.append(prefix)
    family_key = FAMILY_LOGOS.get(profile.family)
    if family_key:
        keys.append(family_key)
        if profile.family.is_bsd:
            keys.append("bsd")
    keys.append(DEFAULT_KEY)

    seen = set()
    return [k for k in keys if not (k in seen or seen.add(k))]


def builtin_keys() -> List[str]:
    return sorted(BUILTIN_LOGOS)


def load_logo_file(path: Path) -> ArtBlock:
    try:
        return ArtBlock.from_text(path.read_text(errors="replace"), key=path.stem)
    except OSError as e:
        raise LogoError(f"Cannot read logo file {path}: {e}") from e


def check_logo_dir(logo_dir: Path) -> None:
    if not logo_dir.is_dir():
        raise LogoError(f"Logo directory not found: {logo_dir}")
    try:
        next(iter(logo_dir.iterdir()), None)
    except OSError as e:
        raise LogoError(f"Cannot read logo directory {logo_dir}: {e}") from e


def lookup(key: str, logo_dir: Optional[Path] = None) -> Optional[ArtBlock]:
    """Find art for one key in the user directory, then the catalog."""
    if logo_dir is not None:
        path = logo_dir / f"{key}.txt"
        if path.is_file():
            return load_logo_file(path)
    text = BUILTIN_LOGOS.get(key)
    if text is not None:
        return ArtBlock.from_text(text, key=key)
    return None


def select_art(
    profile: PlatformProfile,
    logo: Optional[str] = None,
    logo_dir: Optional[Path] = None,
) -> ArtBlock:
    """Pick the art block for this host.

    Args:
        profile: Detected platform profile.
        logo: Explicit logo key, path to a logo file, or ``"none"``.
        logo_dir: User logo directory. If given it must be readable.

    Raises:
        LogoError: An explicitly requested directory or file is unreadable.
    """
    if logo_dir is not None:
        logo_dir = logo_dir.expanduser()
        check_logo_dir(logo_dir)

    if logo:
        if logo.lower() == "none":
            return ArtBlock.empty()
        path = Path(logo).expanduser()
        if path.suffix == ".txt" or "/" in logo:
            return load_logo_file(path)
        art = lookup(logo.lower(), logo_dir)
        if art is not None:
            return art
        logger.warning(f"Unknown logo '{logo}', falling back to detected platform")

    for key in candidate_keys(profile):
        art = lookup(key, logo_dir)
        if art is not None:
            return art
    return ArtBlock.empty()
