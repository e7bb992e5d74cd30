"""
Sandbox language profiles.

Each image is expected to ship its run tool; nothing is installed at run
time. Commands run from the workspace mount. The C# image is built
locally from docker/dotnet-script/Dockerfile.
"""

from typing import Dict, Mapping, Optional

from polyexec.domain.value_objects import LanguageProfile

_PYTHON = LanguageProfile(
    image="python:3.12-alpine",
    filename="main.py",
    command=("python", "main.py"),
)
_BASH = LanguageProfile(
    image="bash:5.2",
    filename="script.sh",
    command=("bash", "script.sh"),
)
_NODE = LanguageProfile(
    image="node:20-alpine",
    filename="main.js",
    command=("node", "main.js"),
)
_CSHARP = LanguageProfile(
    image="polyexec/dotnet-script:8.0",
    filename="main.csx",
    command=("dotnet-script", "main.csx"),
)
_FSHARP = LanguageProfile(
    image="mcr.microsoft.com/dotnet/sdk:8.0",
    filename="main.fsx",
    command=("dotnet", "fsi", "main.fsx"),
)
_PWSH = LanguageProfile(
    image="mcr.microsoft.com/powershell:latest",
    filename="script.ps1",
    command=("pwsh", "-File", "script.ps1"),
)

DEFAULT_LANGUAGE_PROFILES: Dict[str, LanguageProfile] = {
    "python": _PYTHON,
    "python3": _PYTHON,
    "py": _PYTHON,
    "bash": _BASH,
    "sh": _BASH,
    "shell": _BASH,
    "javascript": _NODE,
    "node": _NODE,
    "csharp": _CSHARP,
    "fsharp": _FSHARP,
    "pwsh": _PWSH,
    "powershell": _PWSH,
}


def build_language_profiles(
    image_overrides: Optional[Mapping[str, str]] = None,
) -> Dict[str, LanguageProfile]:
    """
    Return the profile table with per-alias image overrides applied.

    Overrides for unknown aliases are ignored.
    """
    profiles = dict(DEFAULT_LANGUAGE_PROFILES)
    for alias, image in (image_overrides or {}).items():
        if alias in profiles:
            profiles[alias] = profiles[alias].with_image(image)
    return profiles
