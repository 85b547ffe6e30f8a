from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from pathlib import Path

from pptx import Presentation
from pptx.enum.shapes import MSO_SHAPE_TYPE

from slidepress.core.config import CONFIG_SCHEMA, Config, load_config
from slidepress.core.errors import ConfigError, MalformedPackage, NoSlidesFound
from slidepress.core.render.model_json import RENDER_MODEL_SCHEMA, dump_models
from slidepress.core.render.pdf_writer import render_pdf
from slidepress.core.resolve import resolve_file


def _project_root() -> Path:
    # .../src/slidepress/apps/cli/main.py -> .../src/slidepress -> .../src -> project root
    return Path(__file__).resolve().parents[4]


def _schema_paths() -> dict[str, Path]:
    return {
        "config": CONFIG_SCHEMA,
        "render_model": RENDER_MODEL_SCHEMA,
    }


def _print_errors(errs: list[str]) -> None:
    for m in errs[:30]:
        print(f"  - {m}")
    if len(errs) > 30:
        print(f"  ... ({len(errs)} errors)")


def _load_cli_config(args: argparse.Namespace) -> Config | None:
    try:
        cfg = load_config(Path(args.config).resolve() if args.config else None)
    except ConfigError as e:
        print(f"[NG] {e}")
        _print_errors(e.errors)
        return None

    resolver, render = cfg.resolver, cfg.render
    if getattr(args, "scale", None) is not None:
        render = replace(render, scale=args.scale)
    if getattr(args, "workers", None) is not None:
        resolver = replace(resolver, workers=args.workers)
    return replace(cfg, resolver=resolver, render=render)


def _resolve(in_path: Path, cfg: Config) -> list | None:
    if not in_path.exists():
        print(f"[NG] input not found: {in_path}")
        return None
    try:
        return resolve_file(in_path, cfg.resolver)
    except (MalformedPackage, NoSlidesFound) as e:
        print("[NG] cannot resolve presentation")
        print(f"      detail: {e}")
        return None


def cmd_paths(_: argparse.Namespace) -> int:
    root = _project_root()
    print(f"project_root: {root}")
    for k, v in _schema_paths().items():
        print(f"schema.{k}: {v}")
    return 0


def cmd_convert(args: argparse.Namespace) -> int:
    in_path = Path(args.input).resolve()
    out_path = Path(args.out).resolve()

    cfg = _load_cli_config(args)
    if cfg is None:
        return 2
    models = _resolve(in_path, cfg)
    if models is None:
        return 2

    lossy = sum(1 for m in models if m.losses)
    if lossy:
        print(f"[OK] resolved {len(models)} slide(s); {lossy} with partial losses (see -v)")
    else:
        print(f"[OK] resolved {len(models)} slide(s)")

    render_pdf(models, out_path, cfg.render)
    print(f"[OK] converted: {out_path}")
    return 0


def cmd_dump(args: argparse.Namespace) -> int:
    in_path = Path(args.input).resolve()
    out_path = Path(args.out).resolve()

    cfg = _load_cli_config(args)
    if cfg is None:
        return 2
    models = _resolve(in_path, cfg)
    if models is None:
        return 2

    errs = dump_models(models, out_path, source_path=in_path)
    if errs:
        print("[NG] render models do not conform to schema")
        _print_errors(errs)
        return 2
    print(f"[OK] dumped: {out_path}")
    return 0


def cmd_inspect(args: argparse.Namespace) -> int:
    in_path = Path(args.input).resolve()
    if not in_path.exists():
        print(f"[NG] input not found: {in_path}")
        return 2
    try:
        prs = Presentation(str(in_path))
    except (KeyError, ValueError, OSError) as e:
        print("[NG] cannot open presentation")
        print(f"      detail: {e}")
        return 2

    print(f"slides: {len(prs.slides)}")
    print(f"size: {prs.slide_width} x {prs.slide_height} EMU")
    for si, slide in enumerate(prs.slides, start=1):
        text_shapes = 0
        picture_shapes = 0
        group_shapes = 0
        other_shapes = 0
        text_chars = 0
        for shp in slide.shapes:
            st = shp.shape_type
            if st == MSO_SHAPE_TYPE.PICTURE:
                picture_shapes += 1
            elif st == MSO_SHAPE_TYPE.GROUP:
                group_shapes += 1
            elif shp.has_text_frame:
                text_shapes += 1
                text_chars += len((shp.text_frame.text or "").strip())
            else:
                other_shapes += 1
        print(
            f"  slide {si:>3}: text_shapes={text_shapes:>2}, pictures={picture_shapes:>2}, "
            f"groups={group_shapes:>2}, other={other_shapes:>2}, text_chars={text_chars}"
        )
    return 0


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="slidepress")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v: info, -vv: debug")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_paths = sub.add_parser("paths", help="show important project paths")
    p_paths.set_defaults(func=cmd_paths)

    p_conv = sub.add_parser("convert", help="convert .pptx into a page-imaged .pdf")
    p_conv.add_argument("input", help="path to input .pptx")
    p_conv.add_argument("--out", required=True, help="output .pdf path")
    p_conv.add_argument("--config", required=False, help="config .json (see `slidepress paths`)")
    p_conv.add_argument("--scale", type=float, required=False, help="raster pixels per slide pixel")
    p_conv.add_argument("--workers", type=int, required=False, help="resolve slides on N threads")
    p_conv.set_defaults(func=cmd_convert)

    p_dump = sub.add_parser("dump", help="write resolved render models as json")
    p_dump.add_argument("input", help="path to input .pptx")
    p_dump.add_argument("--out", required=True, help="output models.json path")
    p_dump.add_argument("--config", required=False, help="config .json")
    p_dump.set_defaults(func=cmd_dump)

    p_ins = sub.add_parser("inspect", help="summarize shapes per slide (python-pptx)")
    p_ins.add_argument("input", help="path to input .pptx")
    p_ins.set_defaults(func=cmd_inspect)

    args = parser.parse_args(argv)
    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    raise SystemExit(args.func(args))


if __name__ == "__main__":
    main()
