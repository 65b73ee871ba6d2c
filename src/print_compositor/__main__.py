import argparse
import asyncio
import json
import logging
import os
from typing import Optional

from print_compositor.api.cache import TextureCache
from print_compositor.api.composer import CompositorSettings
from print_compositor.api.fingerprint import composite_key
from print_compositor.api.layers import CompositeRequest, request_from_dict
from print_compositor.constants import IMAGE_TIMEOUT, MAX_PRINT_FRACTION, TEXTURE_SIZE
from print_compositor.version import __version__

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="print-compositor command line utility."
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Be more verbose.")
    parser.add_argument("--version", action="version", version=__version__)

    subparsers = parser.add_subparsers(dest="command", required=True)

    compose_parser = subparsers.add_parser(
        "compose", help="Composite a design JSON file into an image"
    )
    compose_parser.add_argument("input_file", help="Design JSON file")
    compose_parser.add_argument("output_file", help="Output image file")
    compose_parser.add_argument(
        "--size", type=int, default=TEXTURE_SIZE, help="Texture size in pixels."
    )
    compose_parser.add_argument(
        "--max-print-fraction",
        type=float,
        default=MAX_PRINT_FRACTION,
        help="Largest print width relative to the texture, 0 for no limit.",
    )
    compose_parser.add_argument(
        "--timeout",
        type=float,
        default=IMAGE_TIMEOUT,
        help="Seconds to wait for each image.",
    )

    key_parser = subparsers.add_parser("key", help="Show the composite key of a design")
    key_parser.add_argument("input_file", help="Design JSON file")

    return parser.parse_args(argv)


def load_request(filename: str) -> CompositeRequest:
    """Load a design file; relative image paths resolve against its folder."""
    with open(filename, "r", encoding="utf-8") as f:
        data = json.load(f)
    root = os.path.dirname(os.path.abspath(filename))
    for item in data.get("prints", []):
        for name in ("customImageUrl", "imageUrl"):
            if item.get(name):
                item[name] = _resolve_path(item[name], root)
    if data.get("base") and data["base"].get("url"):
        data["base"]["url"] = _resolve_path(data["base"]["url"], root)
    return request_from_dict(data)


def _resolve_path(ref: str, root: str) -> str:
    if "://" in ref or ref.startswith("data:") or os.path.isabs(ref):
        return ref
    return os.path.join(root, ref)


async def _compose(request: CompositeRequest, settings: CompositorSettings, output: str) -> int:
    async with TextureCache(settings) as cache:
        texture = await cache.get_or_create(request)
        for warning in texture.warnings:
            logger.warning(str(warning))
        texture.topil().save(output)
        if texture.key not in cache:
            texture.dispose()
    return 0


def main(argv: Optional[list[str]] = None) -> Optional[int]:
    args = parse_args(argv)

    logging.basicConfig(level=logging.WARNING)
    if args.verbose:
        logging.getLogger("print_compositor").setLevel(logging.DEBUG)
    else:
        logging.getLogger("print_compositor").setLevel(logging.INFO)

    try:
        request = load_request(args.input_file)
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.error("Invalid design %s: %s" % (args.input_file, e))
        return 1

    if args.command == "compose":
        settings = CompositorSettings(
            texture_size=args.size,
            max_print_fraction=args.max_print_fraction or None,
            image_timeout=args.timeout,
        )
        return asyncio.run(_compose(request, settings, args.output_file))

    elif args.command == "key":
        print(composite_key(request))

    return None


if __name__ == "__main__":
    raise SystemExit(main())
