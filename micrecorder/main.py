"""Command-line entry point for micrecorder."""

import sys
import asyncio
import argparse
import logging
from pathlib import Path
from typing import Optional

from .audio.audio_pub import PubSubRecordingEvents
from .config import MicRecorderConfig, RecorderConfig
from .services.recording_service import AudioRecorder
from .ui.display import RecordingDisplay

logger = logging.getLogger(__name__)

DEFAULT_LOG_FILE = 'logs/micrecorder.log'


def setup_logging(config: Optional[MicRecorderConfig], level: str = "INFO") -> None:
    """Set up logging from the YAML config, or defaults without one."""
    if config is not None:
        log_file_path = config.get('logging.file_path', DEFAULT_LOG_FILE)
        console_output = config.get('logging.console_output', True)
    else:
        log_file_path = DEFAULT_LOG_FILE
        console_output = True

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    ))
    handlers.append(file_handler)

    # Console handler - only warnings, the display owns stdout
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("micrecorder starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


async def record(recorder_config: RecorderConfig, duration: Optional[float],
                 output: Optional[str]) -> int:
    """Record one segment and optionally write it to ``output``.

    The segment ends on silence (with auto-stop), after ``duration``
    seconds, or on Ctrl-C. Ctrl-C cancels this coroutine under
    ``asyncio.run``; the cancellation ends the segment like any other stop
    so the recording is still written.
    """
    display = RecordingDisplay()
    display.subscribe()
    recorder = AudioRecorder(recorder_config, PubSubRecordingEvents())

    try:
        await recorder.start()
        if display.last_error is not None:
            return 1

        try:
            waited = 0.0
            while recorder.is_recording and (duration is None or waited < duration):
                await asyncio.sleep(0.1)
                waited += 0.1

            await recorder.wait_finalized()
        except asyncio.CancelledError:
            logger.info("Recording interrupted, finishing segment")
    finally:
        await recorder.stop()
        display.unsubscribe()

    if display.last_error is not None or display.last_blob is None:
        return 1

    if output:
        output_path = Path(output)
        if not output_path.suffix:
            output_path = output_path.with_suffix(f".{display.last_blob.extension}")
        output_path.write_bytes(display.last_blob.data)
        display.console.print(f"💾 Saved to {output_path}")
    return 0


def main() -> None:
    """Main entry point for micrecorder."""
    parser = argparse.ArgumentParser(
        description="micrecorder - record the microphone with silence auto-stop"
    )
    parser.add_argument("--config", type=str, help="Path to configuration YAML file")
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: logging.level from config, else INFO)"
    )
    parser.add_argument("--auto-stop", action="store_true", default=None,
                        help="Stop automatically after sustained silence")
    parser.add_argument("--volume-threshold", type=float,
                        help="Silence volume threshold on the 0-255 scale (default: 30)")
    parser.add_argument("--silence-threshold", type=int,
                        help="Milliseconds of silence before auto-stop (default: 2000)")
    parser.add_argument("--duration", type=float, help="Maximum recording length in seconds")
    parser.add_argument("--output", type=str, help="Write the finished recording here")
    parser.add_argument("--version", action="version", version="micrecorder 0.1.0")

    args = parser.parse_args()

    try:
        config = MicRecorderConfig(args.config) if args.config else None
        level = args.log_level or (config.get('logging.level', 'INFO') if config else 'INFO')
        setup_logging(config, level)

        overrides = dict(
            auto_stop=args.auto_stop,
            volume_threshold=args.volume_threshold,
            silence_threshold=args.silence_threshold,
        )
        if config is not None:
            recorder_config = config.recorder_config(**overrides)
        else:
            recorder_config = RecorderConfig(**{k: v for k, v in overrides.items() if v is not None})

        sys.exit(asyncio.run(record(recorder_config, args.duration, args.output)))
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Error: {e}")
        logging.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
