"""Example usage of the async image filesystem view API."""

import asyncio
import logging
import sys

# Add parent directory to path
sys.path.insert(0, "src")

from image_fs_view import (
    ImageViewError,
    TreeOptions,
    cat_file,
    compare_tars,
    get_tree,
    list_files,
)

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def print_tree(node, prefix=""):
    for i, child in enumerate(node.children):
        last = i == len(node.children) - 1
        print(f"{prefix}{'└── ' if last else '├── '}{child.name}")
        if child.is_dir:
            print_tree(child, prefix + ("    " if last else "│   "))


async def main():
    """Example async operations on `docker save` output."""
    if len(sys.argv) < 2:
        print(f"Usage: {sys.argv[0]} IMAGE.tar [OTHER.tar]")
        return

    tar_path = sys.argv[1]

    try:
        logger.info(f"Listing config files in {tar_path}...")
        files = await list_files(tar_path, path="/etc", pattern="*.conf")
        for file in files:
            print(f"{file.mode} {file.size:>8} {file.path}")

        logger.info("Reading /etc/os-release...")
        content = await cat_file(tar_path, "/etc/os-release")
        print(content.decode(errors="replace"))

        logger.info("Building tree of /etc (2 levels)...")
        tree = await get_tree(tar_path, "/etc", options=TreeOptions(level=2))
        print(tree.name)
        print_tree(tree)

        if len(sys.argv) > 2:
            logger.info(f"Comparing with {sys.argv[2]}...")
            result = await compare_tars(tar_path, sys.argv[2])
            if result.identical:
                logger.info("✓ Images are identical")
            for path in result.added:
                print(f"+ {path}")
            for path in result.removed:
                print(f"- {path}")
            for path in result.modified:
                print(f"~ {path}")

    except ImageViewError as e:
        logger.error(f"Image view error: {e}")


if __name__ == "__main__":
    asyncio.run(main())
