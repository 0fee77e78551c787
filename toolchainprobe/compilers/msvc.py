"""
MSVC discovery (Windows only).

Visual Studio installations are located with three strategies whose results
are merged:

- vswhere: the Visual Studio locator shipped with the installer
- env: legacy VSxxxCOMNTOOLS / VSINSTALLDIR / CL variables
- standalone: a scan of the default installation directories

For every installation, vcvarsall.bat is run once per target architecture
in a throwaway batch script that dumps the resulting environment. The
architectures are probed concurrently, one worker per architecture.
"""

import glob
import json
import logging
import os
import re
import tempfile
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..core.exceptions import (
    ArchitectureNotSupportedError,
    CompilerProbeError,
    DiscoveryToolMissingError,
)
from ..core.filesystem import dir_exists, file_exists, to_slash
from ..core.platform import is_windows_host, vcvars_host_arch
from ..core.process import DEFAULT_TIMEOUT, run_probe, split_lines
from ..toolchain.chain import Chain
from ..toolchain.tool import Tool
from ..toolchain.triplet import parse_full
from ..toolchain.version import VersionQuad, compare_quads
from .base import CompilerProber, first_existing

logger = logging.getLogger(__name__)

VSWHERE_SUBPATH = os.path.join("Microsoft Visual Studio", "Installer", "vswhere.exe")
VSWHERE_ARGS = ["-all", "-format", "json", "-products", "*", "-legacy", "-prerelease"]

TOOLSET_MARKER = os.path.join(
    "VC", "Auxiliary", "Build", "Microsoft.VCToolsVersion.default.txt"
)

# vcvarsall.bat target architectures
TARGET_ARCHES = ["x86", "amd64", "arm", "arm64"]

_TRIPLET_ARCH = {
    "x86": "i686",
    "amd64": "x86_64",
    "arm": "arm",
    "arm64": "aarch64",
}

# Variables captured after vcvarsall.bat has run
MSVC_ENV_VARS = [
    "CL",
    "_CL_",
    "INCLUDE",
    "LIBPATH",
    "LINK",
    "_LINK_",
    "LIB",
    "PATH",
    "TMP",
    "FRAMEWORKDIR",
    "FRAMEWORKDIR64",
    "FRAMEWORKVERSION",
    "FRAMEWORKVERSION64",
    "UCRTCONTEXTROOT",
    "UCRTVERSION",
    "UNIVERSALCRTSDKDIR",
    "VCINSTALLDIR",
    "VCTARGETSPATH",
    "WINDOWSLIBPATH",
    "WINDOWSSDKDIR",
    "WINDOWSSDKLIBVERSION",
    "WINDOWSSDKVERSION",
    "VISUALSTUDIOVERSION",
]

# Legacy per-version tool directories (VS 2015, 2013, 2012)
LEGACY_COMNTOOLS = ["VS140COMNTOOLS", "VS120COMNTOOLS", "VS110COMNTOOLS"]

_YEAR_VERSIONS = {"2017": "15.0", "2019": "16.0", "2022": "17.0"}

_BANNER = re.compile(r"^Microsoft .*Version (\S+) for (.*)$", re.MULTILINE)

# ============================================================================
# Installation model
# ============================================================================


@dataclass
class ToolsetVersion:
    """
    A VC toolset installed under VC/Tools/MSVC.

    Attributes:
        version: Toolset version (e.g. '14.38.33130')
        path: Toolset directory
        is_default: Whether the default marker file names this toolset
    """

    version: str
    path: str = ""
    is_default: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"version": self.version, "path": self.path}
        if self.is_default:
            data["default"] = True
        return data


@dataclass
class MsvcInstallation:
    """An instance of Visual Studio or the standalone Build Tools."""

    display_name: str = ""
    instance_id: str = ""
    installation_path: str = ""
    installation_version: str = ""
    description: str = ""
    is_prerelease: bool = False
    toolset_version: str = ""
    toolset_versions: List[ToolsetVersion] = field(default_factory=list)
    discovery_method: str = ""

    def major_version(self) -> int:
        quad = VersionQuad.try_parse(self.installation_version)
        return quad.major if quad else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "compiler": "msvc",
            "display-name": self.display_name,
            "instance-id": self.instance_id,
            "installation-path": self.installation_path,
            "installation-version": self.installation_version,
            "description": self.description,
            "is-prerelease": self.is_prerelease,
            "toolset-version": self.toolset_version,
            "toolset-versions": [t.to_dict() for t in self.toolset_versions],
            "discovery-method": self.discovery_method,
        }

    def summary(self) -> str:
        lines = [
            self.display_name,
            f"- version: '{self.installation_version}'",
            f"- instance id: '{self.instance_id}'",
            f"- path: '{self.installation_path}'",
            f"- discovery method: '{self.discovery_method}'",
        ]
        if self.toolset_versions:
            lines.append("- toolsets:")
            for ts in self.toolset_versions:
                suffix = " (default)" if ts.is_default else ""
                lines.append(f"  - version: '{ts.version}'{suffix}")
        if self.is_prerelease:
            lines.append("- this is a pre-release build")
        return "\n".join(lines)


# ============================================================================
# Installation discovery
# ============================================================================


def find_vswhere() -> str:
    """
    Locate vswhere.exe.

    Raises:
        DiscoveryToolMissingError: If vswhere.exe cannot be found
    """
    candidates = []
    for var in ("ProgramFiles(x86)", "ProgramFiles"):
        root = os.environ.get(var, "")
        if dir_exists(root):
            candidates.append(os.path.join(root, VSWHERE_SUBPATH))
    candidates.append(os.path.join("C:\\Program Files (x86)", VSWHERE_SUBPATH))

    for candidate in candidates:
        if file_exists(candidate):
            return candidate
    raise DiscoveryToolMissingError("failed to find vswhere.exe")


def parse_vswhere_output(output: str) -> List[MsvcInstallation]:
    """
    Parse the JSON array printed by 'vswhere -format json'.

    Raises:
        CompilerProbeError: If the output is not a JSON array
    """
    try:
        instances = json.loads(output or "[]")
    except json.JSONDecodeError as e:
        raise CompilerProbeError("vswhere", f"failed to parse output: {e}") from e
    if not isinstance(instances, list):
        raise CompilerProbeError("vswhere", "unexpected output format")

    installations = []
    for item in instances:
        installations.append(
            MsvcInstallation(
                display_name=item.get("displayName", ""),
                instance_id=item.get("instanceId", ""),
                installation_path=to_slash(item.get("installationPath", "")),
                installation_version=item.get("installationVersion", ""),
                description=item.get("description", ""),
                is_prerelease=bool(item.get("isPrerelease", False)),
                discovery_method="vswhere",
            )
        )
    return installations


def discover_with_vswhere(
    timeout: Optional[float] = DEFAULT_TIMEOUT,
) -> List[MsvcInstallation]:
    """
    Raises:
        DiscoveryToolMissingError: If vswhere.exe cannot be found
        CompilerProbeError: If vswhere fails or prints invalid output
    """
    vswhere = find_vswhere()
    logger.debug(f"Using vswhere: {vswhere}")
    output = run_probe([vswhere, *VSWHERE_ARGS], merge_stderr=False, timeout=timeout)
    return parse_vswhere_output(output)


def discover_from_env(environ: Optional[Dict[str, str]] = None) -> List[MsvcInstallation]:
    """Find installations named by legacy VSxxxCOMNTOOLS, VSINSTALLDIR and CL variables."""
    environ = os.environ if environ is None else environ
    installations = []

    for var in LEGACY_COMNTOOLS:
        tools_dir = environ.get(var, "")
        if not tools_dir:
            continue
        # <install>/Common7/Tools/
        root = os.path.dirname(os.path.dirname(tools_dir.rstrip("\\/")))
        if find_vcvarsall(root):
            major = var[2:-9]
            installations.append(
                MsvcInstallation(
                    display_name=f"Visual Studio {major[:-1]}.{major[-1]}",
                    installation_path=to_slash(root),
                    installation_version=f"{major[:-1]}.{major[-1]}",
                    discovery_method="env",
                )
            )

    root = environ.get("VSINSTALLDIR", "")
    if root and find_vcvarsall(root):
        installations.append(
            MsvcInstallation(
                display_name="Visual Studio",
                installation_path=to_slash(root.rstrip("\\/")),
                installation_version=environ.get("VISUALSTUDIOVERSION", ""),
                discovery_method="env",
            )
        )

    # CL normally carries compiler options; only a path to cl.exe names an installation
    cl = environ.get("CL", "")
    if cl and file_exists(cl):
        root = _installation_root(cl)
        known = {i.installation_path for i in installations}
        if root and to_slash(root) not in known:
            installations.append(
                MsvcInstallation(
                    display_name="Visual Studio",
                    installation_path=to_slash(root),
                    installation_version=environ.get("VISUALSTUDIOVERSION", ""),
                    discovery_method="env",
                )
            )
    return installations


def _installation_root(path: str) -> str:
    """Walk up from a file to the directory holding vcvarsall.bat."""
    directory = os.path.dirname(os.path.abspath(path))
    while True:
        if find_vcvarsall(directory):
            return directory
        parent = os.path.dirname(directory)
        if parent == directory:
            return ""
        directory = parent


def discover_standalone(roots: Optional[List[str]] = None) -> List[MsvcInstallation]:
    """Scan '<ProgramFiles>/Microsoft Visual Studio/<year>/<edition>' for vcvarsall.bat."""
    if roots is None:
        roots = [
            os.environ.get("ProgramFiles(x86)", ""),
            os.environ.get("ProgramFiles", ""),
        ]

    installations = []
    for root in roots:
        if not dir_exists(root):
            continue
        pattern = os.path.join(root, "Microsoft Visual Studio", "*", "*")
        for edition_dir in sorted(glob.glob(pattern)):
            if not find_vcvarsall(edition_dir):
                continue
            year = os.path.basename(os.path.dirname(edition_dir))
            edition = os.path.basename(edition_dir)
            installations.append(
                MsvcInstallation(
                    display_name=f"Visual Studio {edition} {year}",
                    installation_path=to_slash(edition_dir),
                    installation_version=_YEAR_VERSIONS.get(year, ""),
                    discovery_method="standalone",
                )
            )
    return installations


def find_vcvarsall(installation_path: str) -> str:
    """Return the vcvarsall.bat of an installation, or an empty string."""
    if not installation_path:
        return ""
    for parts in (("VC", "Auxiliary", "Build"), ("VC",)):
        candidate = os.path.join(installation_path, *parts, "vcvarsall.bat")
        if file_exists(candidate):
            return candidate
    return ""


def read_toolset_versions(installation_path: str) -> Tuple[str, List[ToolsetVersion]]:
    """
    Read the default toolset marker and list installed toolsets.

    Returns:
        (default_version, toolsets sorted newest first)
    """
    default = ""
    marker = os.path.join(installation_path, TOOLSET_MARKER)
    if file_exists(marker):
        try:
            with open(marker, "r", encoding="utf-8") as f:
                default = f.read().strip()
        except OSError as e:
            logger.debug(f"Failed to read {marker}: {e}")

    toolsets: Dict[str, ToolsetVersion] = {}
    msvc_dir = os.path.join(installation_path, "VC", "Tools", "MSVC")
    if dir_exists(msvc_dir):
        for name in os.listdir(msvc_dir):
            path = os.path.join(msvc_dir, name)
            if dir_exists(path) and VersionQuad.try_parse(name):
                toolsets[name] = ToolsetVersion(version=name, path=to_slash(path))
    if default and default not in toolsets:
        toolsets[default] = ToolsetVersion(
            version=default, path=to_slash(os.path.join(msvc_dir, default))
        )
    if default:
        toolsets[default].is_default = True

    ordered = sorted(
        toolsets.values(),
        key=lambda t: VersionQuad.try_parse(t.version) or VersionQuad(),
        reverse=True,
    )
    return default, ordered


def _path_key(path: str) -> str:
    return os.path.normcase(os.path.normpath(path))


def merge_installations(*groups: List[MsvcInstallation]) -> List[MsvcInstallation]:
    """Merge strategy results, keeping the first installation seen per path."""
    seen = set()
    merged = []
    for group in groups:
        for inst in group:
            key = _path_key(inst.installation_path)
            if key in seen:
                continue
            seen.add(key)
            merged.append(inst)
    return merged


# ============================================================================
# Architecture probing
# ============================================================================


def vcvars_arguments(host_arch: str) -> List[str]:
    """
    Build the vcvarsall.bat argument for each target architecture.

    Example:
        >>> vcvars_arguments("amd64")
        ['amd64_x86', 'amd64', 'amd64_arm', 'amd64_arm64']
    """
    return [
        target if target == host_arch else f"{host_arch}_{target}"
        for target in TARGET_ARCHES
    ]


def parse_bat_vars(text: str) -> Dict[str, str]:
    """
    Parse 'NAME := value' lines written by the probe script.

    Variables the batch file left undefined come back as '%NAME%' and are
    dropped.
    """
    result = {}
    for line in split_lines(text):
        name, sep, value = line.partition(":=")
        name, value = name.strip(), value.strip()
        if not sep or not name:
            continue
        if value == f"%{name}%":
            continue
        result[name] = value
    return result


def collect_bat_vars(
    devbat: str,
    arg: str,
    major_version: str,
    common_dir: str,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
) -> Dict[str, str]:
    """
    Run vcvarsall.bat for one architecture and capture the environment.

    The probe script and its output live in a private temporary directory
    that is removed on return, whether or not the probe succeeded.

    Raises:
        CompilerProbeError: If the script fails to run
        ArchitectureNotSupportedError: If the captured output has no INCLUDE
    """
    with tempfile.TemporaryDirectory(prefix="toolchainprobe-") as tmpdir:
        bat_path = os.path.join(tmpdir, "vcvars-probe.bat")
        env_path = os.path.join(tmpdir, "vcvars-probe.env")

        lines = [
            "@echo off",
            'cd /d "%~dp0"',
            f'set "VS{major_version}0COMNTOOLS={common_dir}"',
            f'call "{devbat}" {arg} || exit /b 1',
        ]
        for name in MSVC_ENV_VARS:
            lines.append(f'echo {name} := %{name}% >> "{env_path}"')

        with open(bat_path, "w", encoding="utf-8", newline="\r\n") as f:
            f.write("\n".join(lines) + "\n")

        run_probe(["cmd", "/C", bat_path], stdin=None, timeout=timeout)

        try:
            with open(env_path, "r", encoding="utf-8", errors="replace") as f:
                variables = parse_bat_vars(f.read())
        except OSError as e:
            raise CompilerProbeError(f"{devbat} {arg}", f"no output: {e}") from e

    if not variables.get("INCLUDE"):
        raise ArchitectureNotSupportedError(
            f"{devbat} {arg}", "invalid batch output, can't find INCLUDE entry"
        )
    return variables


def _split_semicolons(value: str) -> List[str]:
    return [v for v in value.split(";") if v]


def chain_from_vars(
    inst: MsvcInstallation, arch: str, variables: Dict[str, str]
) -> Chain:
    """Build the Chain for one architecture from captured vcvarsall variables."""
    target = parse_full(f"{_TRIPLET_ARCH.get(arch, arch)}-pc-windows-msvc")
    chain = Chain(
        compiler="msvc",
        implementation="msvc",
        version=inst.installation_version,
        full_version=f"{inst.display_name} - {target.arch} - {inst.installation_version}",
        target=target,
        installed_dir=to_slash(inst.installation_path),
        msvc_id=inst.instance_id,
        msvc_arch=arch,
        msvc_version=variables.get("VISUALSTUDIOVERSION", ""),
        windows_sdk_version=variables.get("WINDOWSSDKVERSION", "").rstrip("\\"),
        ucrt_version=variables.get("UCRTVERSION", ""),
        toolset_version=inst.toolset_version,
    )

    chain.cc_include_dirs = [
        to_slash(d) for d in _split_semicolons(variables.get("INCLUDE", "")) if dir_exists(d)
    ]
    chain.cxx_include_dirs = list(chain.cc_include_dirs)
    chain.library_dirs = [to_slash(d) for d in _split_semicolons(variables.get("LIB", ""))]

    paths = _split_semicolons(variables.get("PATH", ""))

    cl = variables.get("CL", "")
    cl = to_slash(cl) if cl and file_exists(cl) else first_existing(paths, "cl.exe")
    if cl:
        chain.tools[Tool.C_COMPILER] = cl
        chain.tools[Tool.CXX_COMPILER] = cl

    link = variables.get("LINK", "")
    link = to_slash(link) if link and file_exists(link) else first_existing(paths, "link.exe")
    if link:
        chain.tools[Tool.DLL_LINKER] = link
        chain.tools[Tool.EXE_LINKER] = link

    lib = first_existing([os.path.dirname(link)] if link else [], "lib.exe")
    lib = lib or first_existing(paths, "lib.exe")
    if lib:
        chain.tools[Tool.ARCHIVER] = lib

    for tool, filename in ((Tool.RESOURCE_COMPILER, "rc.exe"), (Tool.MANIFEST_TOOL, "mt.exe")):
        found = first_existing(paths, filename)
        if found:
            chain.tools[tool] = found

    chain.set_environment(variables)
    return chain


def probe_arches(
    inst: MsvcInstallation,
    feedback=None,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    host_arch: Optional[str] = None,
) -> List[Chain]:
    """
    Probe every target architecture of an installation.

    One vcvarsall.bat run per architecture, executed concurrently. Each
    worker writes only its own slot of the result list.

    Returns:
        One Chain per supported architecture, in TARGET_ARCHES order
    """

    def notify(message: str) -> None:
        logger.debug(message)
        if feedback is not None:
            feedback(message)

    notify(f"testing installation: {inst.installation_path}")
    devbat = find_vcvarsall(inst.installation_path)
    if not devbat:
        notify("ERROR: failed to locate vcvarsall.bat file")
        return []
    notify(f"using devbat: {devbat}")

    common_dir = os.path.join(inst.installation_path, "Common7", "Tools")
    major = str(inst.major_version())
    arguments = vcvars_arguments(host_arch or vcvars_host_arch())
    results: List[Optional[Dict[str, str]]] = [None] * len(arguments)

    def probe(index: int, arg: str) -> None:
        try:
            results[index] = collect_bat_vars(devbat, arg, major, common_dir, timeout)
        except ArchitectureNotSupportedError as e:
            logger.debug(f"{inst.display_name}: {e}")
        except CompilerProbeError as e:
            logger.debug(f"{inst.display_name}: vcvarsall {arg} failed: {e}")

    with ThreadPoolExecutor(max_workers=len(arguments)) as executor:
        futures = [executor.submit(probe, i, arg) for i, arg in enumerate(arguments)]
        for future in futures:
            future.result()

    chains = []
    for arch, variables in zip(TARGET_ARCHES, results):
        if not variables:
            continue
        notify(f"{inst.display_name}: architecture {arch} - supported")
        chains.append(chain_from_vars(inst, arch, variables))
    return chains


# ============================================================================
# Single compiler probing and ordering
# ============================================================================


def query_version(cl: str, timeout: Optional[float] = DEFAULT_TIMEOUT) -> Tuple[str, str]:
    """
    Read version and target architecture from the cl.exe banner.

    Example banner:
        Microsoft (R) C/C++ Optimizing Compiler Version 19.38.33135 for x64

    Returns:
        (version, target)

    Raises:
        CompilerProbeError: If cl.exe fails or prints an unknown banner
    """
    output = run_probe([cl], stdin=None, timeout=timeout, check=False)
    match = _BANNER.search(output)
    if not match:
        raise CompilerProbeError(cl, "unsupported version output")
    return match.group(1), match.group(2).strip()


def compare(c1: Chain, c2: Chain) -> int:
    """
    Order two MSVC chains.

    Compares version, Windows SDK and UCRT as version quads, then the full
    version and installed directory as strings.

    Returns:
        -1, 0 or 1
    """
    for a, b in (
        (c1.version, c2.version),
        (c1.windows_sdk_version, c2.windows_sdk_version),
        (c1.ucrt_version, c2.ucrt_version),
    ):
        result = compare_quads(a, b)
        if result:
            return result
    for a, b in (
        (c1.full_version, c2.full_version),
        (c1.installed_dir, c2.installed_dir),
    ):
        if a != b:
            return -1 if a < b else 1
    return 0


# ============================================================================
# Prober
# ============================================================================


class MsvcProber(CompilerProber):
    """Discovers Visual Studio installations and their per-architecture toolchains."""

    name = "msvc"

    def discover_installations(self) -> List[MsvcInstallation]:
        """
        Find Visual Studio installations.

        Returns an empty list on non-Windows hosts. A failing strategy is
        reported and the remaining strategies still run.

        Returns:
            Installations sorted newest version first
        """
        if not is_windows_host():
            self.notify("msvc discovery is only available on Windows hosts")
            return []

        self.notify("discovering msvc installations")

        found = []
        try:
            found.append(discover_with_vswhere(self.timeout))
        except (DiscoveryToolMissingError, CompilerProbeError) as e:
            self.notify(str(e))
        found.append(discover_from_env())
        found.append(discover_standalone())

        installations = merge_installations(*found)
        for inst in installations:
            default, toolsets = read_toolset_versions(inst.installation_path)
            inst.toolset_version = default or (toolsets[0].version if toolsets else "")
            inst.toolset_versions = toolsets

        installations.sort(
            key=lambda i: VersionQuad.try_parse(i.installation_version) or VersionQuad(),
            reverse=True,
        )

        self.notify(f"found {len(installations)} msvc installation(s)")
        logger.info(f"Found {len(installations)} msvc installation(s)")
        return installations

    def discover_toolchains(self, want_cxx: bool = False) -> List[Chain]:
        chains = []
        for inst in self.discover_installations():
            chains.extend(probe_arches(inst, self.feedback, self.timeout))
        return chains


def discover_installations(feedback=None, **kwargs) -> List[MsvcInstallation]:
    return MsvcProber(feedback=feedback, **kwargs).discover_installations()


def discover_toolchains(want_cxx: bool = False, feedback=None, **kwargs) -> List[Chain]:
    return MsvcProber(feedback=feedback, **kwargs).discover_toolchains(want_cxx)


__all__ = [
    "TARGET_ARCHES",
    "MSVC_ENV_VARS",
    "ToolsetVersion",
    "MsvcInstallation",
    "MsvcProber",
    "find_vswhere",
    "parse_vswhere_output",
    "discover_with_vswhere",
    "discover_from_env",
    "discover_standalone",
    "find_vcvarsall",
    "read_toolset_versions",
    "merge_installations",
    "vcvars_arguments",
    "parse_bat_vars",
    "collect_bat_vars",
    "chain_from_vars",
    "probe_arches",
    "query_version",
    "compare",
    "discover_installations",
    "discover_toolchains",
]
