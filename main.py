"""Command-line entry point for the detect-and-classify pipeline."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys

from config import ConfigController
from core.app import AppConfig, run
from core.errors import ConfigurationError, PipelineCancelledError, PipelineStageError
from core.logging import logger


def configure_logging(level_name: str) -> None:
    """Configure application logging."""

    level = logging._nameToLevel.get(level_name.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Raw command-line arguments.

    Returns:
        Parsed arguments namespace.
    """

    parser = argparse.ArgumentParser(
        description="Detect regions of interest in an image and classify each crop."
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--image", type=Path, help="Image file to classify.")
    source.add_argument(
        "--camera",
        action="store_true",
        help="Classify one frame from the configured camera.",
    )
    parser.add_argument(
        "--diagnostics",
        action="store_true",
        help="Run diagnostics probes and exit.",
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=Path("config"),
        help="Directory holding default.yaml and override.yaml.",
    )
    parser.add_argument(
        "--config-file",
        type=str,
        default="default.yaml",
        help="Base configuration file name inside the config directory.",
    )
    parser.add_argument("--log-level", type=str, help="Override the configured logging level.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Application entry point.

    Args:
        argv: Optional list of command-line arguments.

    Returns:
        Process exit code.
    """

    if argv is None:
        argv = sys.argv[1:]

    args = parse_args(argv)
    config_controller = ConfigController.get_instance(
        config_file=args.config_file,
        config_dir=args.config_dir,
    )
    config = config_controller.get_config()
    configure_logging(args.log_level or config.get("logging_level", "INFO"))

    if args.diagnostics:
        from config.diagnostics import probe as config_probe
        from core.diagnostics import probe as core_probe
        from diagnostics.runner import exit_code, format_results, run_diagnostics
        from hardware.diagnostics import probe as hardware_probe
        from storage.diagnostics import probe as storage_probe
        from vision.diagnostics import probe as vision_probe

        results = run_diagnostics(
            [
                lambda: config_probe(config_dir=args.config_dir),
                core_probe,
                hardware_probe,
                storage_probe,
                vision_probe,
            ]
        )
        print(format_results(results))
        return exit_code(results)

    if args.image is None and not args.camera:
        logger.error("Nothing to classify: pass --image PATH or --camera")
        return 2

    try:
        results = run(
            AppConfig(
                image_path=args.image,
                use_camera=args.camera,
                log_level=args.log_level,
            )
        )
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return 2
    except PipelineStageError as exc:
        logger.error("Pipeline failed during %s: %s", exc.stage, exc.__cause__ or exc)
        return 1
    except PipelineCancelledError as exc:
        logger.warning("Pipeline cancelled: %s", exc)
        return 1
    except (OSError, ValueError) as exc:
        logger.error("Failed to classify: %s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Program terminated by user")
        return 130

    print(json.dumps([item.to_payload() for item in results], indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
