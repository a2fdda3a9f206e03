"""Command line interface for the PBR map engine."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Dict, Optional, Sequence

from .core import config
from .core.errors import PBREngineError
from .core.map_kinds import MapKind
from .core.pixel_buffer import PixelBuffer
from .core.utils_io import SafeFileManager
from .modules.export import discover_texture_sets, export_texture_set
from .modules.generation import populate_texture_set
from .modules.packing import mask_map
from .modules.surface_maps import local_maps, normal_map
from .modules.texture_set import SlotState, TextureSession, TextureSet

LOGGER = logging.getLogger("neurogen_pbr.main")

EXIT_ENGINE_ERROR = 2


class BoolAction(argparse.Action):
    """Boolean flag parser supporting affirmative and negative forms."""

    def __call__(self, parser, namespace, values, option_string=None):  # type: ignore[override]
        if values is None:
            setattr(namespace, self.dest, True)
            return
        normalized = str(values).strip().lower()
        if normalized in {"1", "y", "yes", "t", "true", "on"}:
            setattr(namespace, self.dest, True)
        elif normalized in {"0", "n", "no", "f", "false", "off"}:
            setattr(namespace, self.dest, False)
        else:
            raise argparse.ArgumentTypeError(f"Invalid boolean for {option_string}: {values!r}")


def _configure_logging(log_path: Path) -> None:
    log_path.parent.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s", "%Y-%m-%d %H:%M:%S")
    file_handler = logging.FileHandler(log_path, encoding="utf-8", delay=True)
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)
    logging.basicConfig(level=logging.INFO, handlers=[file_handler, console_handler])


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"Expected a positive integer, got {value}")
    return number


def _square(value: str) -> tuple[int, int]:
    side = int(value)
    if side <= 0:
        raise argparse.ArgumentTypeError(f"Size must be positive, got {value}")
    return side, side


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="neurogen-pbr", description="PBR normal synthesis, mask packing and export")
    parser.add_argument("--log-file", type=Path, default=None, help="Log file (default: from configuration)")
    commands = parser.add_subparsers(dest="command", required=True)

    normal = commands.add_parser("normal", help="Synthesize a tileable normal map from an image")
    normal.add_argument("input", type=Path)
    normal.add_argument("output", type=Path)
    normal.add_argument("--intensity", type=float, default=config.NORMAL_INTENSITY, help="Bump strength (> 0)")

    pack = commands.add_parser("pack", help="Pack metallic/occlusion/roughness into an HDRP mask map")
    pack.add_argument("output", type=Path)
    pack.add_argument("--metallic", type=Path, default=None)
    pack.add_argument("--occlusion", type=Path, default=None)
    pack.add_argument("--roughness", type=Path, default=None)
    pack.add_argument("--size", type=_square, default=config.MASK_RESOLUTION, help="Output side length in pixels")
    pack.add_argument("--resample", choices=("nearest", "bilinear"), default=config.RESAMPLE)

    build = commands.add_parser("build", help="Derive every map from an albedo and export the texture set")
    build.add_argument("albedo", type=Path)
    build.add_argument("--output", type=Path, default=config.PATH_OUTPUT, help="Export directory")
    build.add_argument("--id", dest="identifier", default=None, help="Texture set identifier (default: timestamp)")
    build.add_argument("--prefix", default=config.EXPORT_PREFIX)
    build.add_argument("--intensity", type=float, default=config.NORMAL_INTENSITY)
    build.add_argument("--threads", type=_positive_int, default=config.THREADS, help="Number of worker threads")
    build.add_argument(
        "--mask",
        nargs="?",
        default=True,
        action=BoolAction,
        help="Also export the packed HDRP mask map (default: true)",
    )
    build.add_argument("--no-mask", dest="mask", action="store_false", help="Skip the packed mask map")
    build.add_argument("--mask-size", type=_square, default=config.MASK_RESOLUTION)

    discover = commands.add_parser("discover", help="List texture sets found in an export directory")
    discover.add_argument("directory", type=Path)
    discover.add_argument("--prefix", default=config.EXPORT_PREFIX)
    return parser


def build_runtime_config(args: argparse.Namespace) -> Dict[str, object]:
    overrides: Dict[str, object] = {}
    if args.log_file is not None:
        overrides["LOG_FILE"] = args.log_file
    for attribute, key in (
        ("output", "PATH_OUTPUT"),
        ("prefix", "EXPORT_PREFIX"),
        ("intensity", "NORMAL_INTENSITY"),
        ("threads", "THREADS"),
        ("mask", "INCLUDE_MASK"),
        ("mask_size", "MASK_RESOLUTION"),
    ):
        if getattr(args, attribute, None) is not None:
            overrides[key] = getattr(args, attribute)
    return config.build_config(overrides)


def _write(buffer: PixelBuffer, path: Path) -> Path:
    manager = SafeFileManager(path.resolve().parent)
    return manager.atomic_write(buffer.encode_png(), path.name)


def _run_normal(args: argparse.Namespace, cfg: Dict[str, object]) -> int:
    source = PixelBuffer.decode(args.input)
    result = normal_map.generate(source, intensity=float(cfg["NORMAL_INTENSITY"]))
    LOGGER.info("Normal map written to %s", _write(result, args.output))
    return 0


def _run_pack(args: argparse.Namespace, cfg: Dict[str, object]) -> int:
    sources = {
        name: PixelBuffer.decode(path) if path is not None else None
        for name, path in (("metallic", args.metallic), ("occlusion", args.occlusion), ("roughness", args.roughness))
    }
    result = mask_map.generate(**sources, size=args.size, resample=args.resample)
    LOGGER.info("Mask map written to %s", _write(result, args.output))
    return 0


def _run_build(args: argparse.Namespace, cfg: Dict[str, object]) -> int:
    albedo = PixelBuffer.decode(args.albedo)
    if args.identifier is not None:
        texture_set = TextureSet(args.identifier, albedo)
    else:
        texture_set = TextureSession().start(albedo)
    slots = populate_texture_set(
        texture_set,
        local_maps.generate,
        intensity=float(cfg["NORMAL_INTENSITY"]),
        max_workers=int(cfg["THREADS"]),
    )
    for kind, slot in slots.items():
        if slot.state is SlotState.FAILED:
            LOGGER.warning("%s map unavailable: %s", kind.value, slot.error)
    written = export_texture_set(
        texture_set,
        Path(cfg["PATH_OUTPUT"]),
        prefix=str(cfg["EXPORT_PREFIX"]),
        include_mask=bool(cfg["INCLUDE_MASK"]),
        mask_size=tuple(cfg["MASK_RESOLUTION"]),  # type: ignore[arg-type]
    )
    for path in written:
        print(path)
    return 0


def _run_discover(args: argparse.Namespace, cfg: Dict[str, object]) -> int:
    for identifier, maps in discover_texture_sets(args.directory, str(cfg["EXPORT_PREFIX"])).items():
        kinds = ", ".join(kind.value for kind in MapKind if kind in maps)
        print(f"{identifier}: {kinds}")
    return 0


COMMANDS = {
    "normal": _run_normal,
    "pack": _run_pack,
    "build": _run_build,
    "discover": _run_discover,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    cfg = build_runtime_config(args)
    _configure_logging(Path(cfg["LOG_FILE"]))
    LOGGER.info("Running %s", args.command)
    try:
        return COMMANDS[args.command](args, cfg)
    except PBREngineError as exc:
        LOGGER.error("%s failed: %s", args.command, exc)
        return EXIT_ENGINE_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
