from __future__ import annotations

import argparse
import asyncio
import logging
import mimetypes
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ai_hairstylist.capture import CameraSource, OpenCVCamera, StillImageCamera
from ai_hairstylist.clients.gemini_image import GeminiImageClient
from ai_hairstylist.config import AppConfig, load_config
from ai_hairstylist.errors import CameraUnavailable
from ai_hairstylist.session import DEFAULT_PROMPT, HairstyleSession
from ai_hairstylist.tasks.variations import VariationBatchRunner
from ai_hairstylist.types import EncodedImage


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Capture a photo and generate AI hairstyle variations with Gemini."
    )
    parser.add_argument(
        "--image",
        type=Path,
        default=None,
        help="Use a still image instead of the webcam.",
    )
    parser.add_argument("--device", type=int, default=0, help="Webcam device index.")
    parser.add_argument("--prompt", type=str, default=DEFAULT_PROMPT, help="Hairstyle description.")
    parser.add_argument(
        "--count",
        type=int,
        default=None,
        help="Number of styles to generate (1-10, defaults to configuration).",
    )
    parser.add_argument(
        "--partial",
        action="store_true",
        help="Keep successful styles even if some variations fail.",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory for generated images (defaults to OUTPUT_ROOT_DIR).",
    )
    parser.add_argument(
        "--dotenv",
        type=Path,
        default=None,
        help="Optional path to a .env file containing the API key.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args()


def _save_images(images: list[str], output_dir: Path) -> list[Path]:
    output_dir.mkdir(parents=True, exist_ok=True)
    saved: list[Path] = []
    for index, data_url in enumerate(images, start=1):
        image = EncodedImage.from_data_url(data_url)
        extension = mimetypes.guess_extension(image.media_type) or ".bin"
        path = output_dir / f"style-{index:02d}{extension}"
        path.write_bytes(image.data)
        saved.append(path)
    return saved


def main() -> None:
    args = parse_args()
    console = Console()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )

    config: AppConfig = load_config(args.dotenv)
    camera: CameraSource = (
        StillImageCamera(args.image) if args.image else OpenCVCamera(device=args.device)
    )

    client = GeminiImageClient(config.gemini)
    session = HairstyleSession(
        runner=VariationBatchRunner(client, config.batch),
        prompt=args.prompt,
        variation_count=args.count or config.batch.default_variations,
        partial_results=args.partial,
    )

    try:
        with camera:
            if isinstance(camera, OpenCVCamera):
                console.input("[bold]Press Enter to capture your photo[/bold] ")
            session.capture_from(camera)
    except CameraUnavailable as exc:
        console.print(f"[red]{exc}[/red]")
        raise SystemExit(1) from exc

    async def run_and_close() -> None:
        try:
            with console.status("Generating your new look..."):
                await session.generate()
        finally:
            await client.aclose()

    asyncio.run(run_and_close())

    if session.error:
        console.print(f"[red]{session.error}[/red]")

    if session.generated_images:
        output_dir = args.output_dir or config.output.root_dir
        saved = _save_images(session.generated_images, output_dir)
        table = Table(title="Generated Styles")
        table.add_column("#", justify="right")
        table.add_column("File")
        for index, path in enumerate(saved, start=1):
            table.add_row(str(index), str(path))
        console.print(table)

    if session.error:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
