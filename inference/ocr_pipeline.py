"""
MonOCR: End-to-End Line Recognition Pipeline
==============================================
Decode → Segment lines → Encode (64×1024) → Recognition model → CTC → Text

Usage:
    from inference.ocr_pipeline import MonOCREngine

    engine = MonOCREngine()
    engine.initialize(model_bytes, charset_text).unwrap()
    result = engine.recognize_image(image_bytes).unwrap()
    print(result.text)

    for line in result.lines:
        print(f"{line.text} (conf: {line.confidence:.2f}, y={line.segment.y})")

Command line:
    monocr page.jpg --model monocr.onnx --charset charset.txt
"""

import logging
import sys
import time
from enum import Enum
from functools import partial
from pathlib import Path
from typing import List, Optional

from monocr.config import OCRConfig as cfg
from monocr.contracts import ErrorKind, LineResult, Outcome, RecognitionResult
from monocr.ctc import CharCodec, ctc_greedy_decode_with_confidence
from monocr.preprocess import argmax_per_timestep, blank_tensor, decode_image, encode, softmax_max
from monocr.segmentation import LineSegment, segment_lines

from .backends import BACKENDS, ModelSession, SessionFactory, get_session_factory

logger = logging.getLogger(__name__)


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    DISPOSED = "disposed"


# ============================================================================
# ENGINE
# ============================================================================

class MonOCREngine:
    """Owns the model session and charset; recognizes whole images."""

    def __init__(self, session_factory: Optional[SessionFactory] = None, backend: str = cfg.BACKEND):
        """
        Args:
            session_factory: Builds a ModelSession from model bytes
                (defaults to the configured backend)
            backend: 'onnx' or 'torchscript', used when no factory is given
        """
        self.session_factory = session_factory or get_session_factory(backend)
        self.session: Optional[ModelSession] = None
        self.codec: Optional[CharCodec] = None
        self.state = EngineState.UNINITIALIZED

    @property
    def ready(self) -> bool:
        return self.state is EngineState.READY

    def initialize(self, model_blob: bytes, charset_text: str) -> Outcome[None]:
        """Parse the charset, build the session and run one warm-up inference."""
        if self.state is EngineState.DISPOSED:
            return Outcome.fail(ErrorKind.ENGINE_DISPOSED, "Engine disposed")
        if self.state is EngineState.READY:
            return Outcome.success()

        codec = CharCodec.from_text(charset_text)
        if not len(codec):
            return Outcome.fail(ErrorKind.INIT_FAILED, "Charset is empty")
        logger.info("Loaded charset: %d characters", len(codec))

        t0 = time.perf_counter()
        try:
            session = self.session_factory(model_blob)
        except Exception as e:
            logger.exception("Model load failed")
            return Outcome.fail(ErrorKind.INIT_FAILED, f"Failed to load recognition model: {e}")
        logger.info("Model loaded in %.3fs", time.perf_counter() - t0)

        t0 = time.perf_counter()
        try:
            session.run(blank_tensor())
        except Exception as e:
            logger.exception("Warm-up inference failed")
            session.release()
            return Outcome.fail(ErrorKind.INIT_FAILED, f"Warm-up inference failed: {e}")
        logger.info("Model warm-up: %.3fs", time.perf_counter() - t0)

        self.session = session
        self.codec = codec
        self.state = EngineState.READY
        return Outcome.success()

    def recognize_image(self, image_bytes: bytes) -> Outcome[RecognitionResult]:
        """
        Recognize every text line of an image.

        Lines are processed top to bottom; whitespace-only lines are dropped
        and the first line that fails aborts the whole image.
        """
        if self.state is EngineState.DISPOSED:
            return Outcome.fail(ErrorKind.ENGINE_DISPOSED, "Engine disposed")
        if self.state is not EngineState.READY:
            return Outcome.fail(ErrorKind.NOT_INITIALIZED, "Model not initialized. Call initialize() first.")

        t0 = time.perf_counter()
        try:
            image = decode_image(image_bytes)
        except Exception as e:
            return Outcome.fail(ErrorKind.RECOGNITION_FAILED, f"Failed to decode image: {e}")

        try:
            segments = segment_lines(image)
        except Exception as e:
            logger.exception("Segmentation failed")
            return Outcome.fail(ErrorKind.RECOGNITION_FAILED, f"Line segmentation failed: {e}")
        t_segment = time.perf_counter() - t0

        if not segments:
            segments = [LineSegment(y=0, height=image.height)]

        lines: List[LineResult] = []
        for segment in segments:
            outcome = self._recognize_line(image, segment)
            if not outcome.ok:
                return outcome
            if outcome.value.text.strip():
                lines.append(outcome.value)

        elapsed = time.perf_counter() - t0
        logger.debug("Recognized %d/%d lines in %.3fs (segmentation %.3fs)",
                     len(lines), len(segments), elapsed, t_segment)
        return Outcome.success(RecognitionResult(
            text="\n".join(line.text for line in lines),
            lines=tuple(lines),
            meta={"segments": len(segments), "elapsed_s": elapsed},
        ))

    def _recognize_line(self, image, segment: LineSegment) -> Outcome[LineResult]:
        try:
            tensor = encode(image, segment)
            outputs = self.session.run(tensor)
            if not outputs:
                raise ValueError("Model returned no outputs")
            logits = next(iter(outputs.values()))
            indices = argmax_per_timestep(logits)
            probs = softmax_max(logits)
        except Exception as e:
            logger.exception("Recognition failed for line y=%d height=%d", segment.y, segment.height)
            return Outcome.fail(
                ErrorKind.RECOGNITION_FAILED,
                f"Recognition failed for line at y={segment.y}: {e}",
            )

        text, confidence = ctc_greedy_decode_with_confidence(indices, probs, self.codec)
        return Outcome.success(LineResult(segment=segment, text=text, confidence=confidence))

    def dispose(self) -> None:
        """Release the model session. The engine cannot be used afterwards."""
        if self.session is not None:
            self.session.release()
            self.session = None
        self.state = EngineState.DISPOSED


# ============================================================================
# CLI
# ============================================================================

def main(argv=None):
    import argparse
    import asyncio

    from tqdm import tqdm

    from monocr.assets import AssetSource
    from monocr.contracts import OcrError
    from monocr.debug import log_segmentation_details, visualize_segments
    from .orchestrator import InferenceOrchestrator

    parser = argparse.ArgumentParser(description='MonOCR Line Recognition')
    parser.add_argument('images', nargs='+', help='Input image path(s)')
    parser.add_argument('--model', '-m', default=cfg.MODEL_REF, help='Model path or URL')
    parser.add_argument('--charset', '-c', default=cfg.CHARSET_REF or None, required=not cfg.CHARSET_REF,
                        help='Charset path or URL (default: $MONOCR_CHARSET)')
    parser.add_argument('--backend', '-b', default=cfg.BACKEND, choices=sorted(BACKENDS))
    parser.add_argument('--timeout', '-t', type=float, default=cfg.TIMEOUT_S, help='Per-request timeout (s)')
    parser.add_argument('--lines', action='store_true', help='Print every line with its confidence')
    parser.add_argument('--debug-dir', help='Write segmentation overlays here')
    parser.add_argument('--verbose', '-v', action='store_true')
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    async def run() -> int:
        assets = AssetSource(model_ref=args.model, charset_ref=args.charset)
        engine_factory = partial(MonOCREngine, backend=args.backend)
        failures = 0

        async with InferenceOrchestrator(assets, timeout=args.timeout, engine_factory=engine_factory) as ocr:
            try:
                await ocr.initialize()
            except OcrError as e:
                print(f'Initialization failed [{e.kind.value}]: {e.message}')
                return 1

            for path in tqdm(args.images, desc='Recognizing', disable=len(args.images) < 2):
                path = Path(path)
                try:
                    data = path.read_bytes()
                except OSError as e:
                    print(f'\n{path.name}: FAILED could not read image: {e}')
                    failures += 1
                    continue
                try:
                    result = await ocr.recognize_detailed(data)
                except OcrError as e:
                    print(f'\n{path.name}: FAILED [{e.kind.value}] {e.message}')
                    failures += 1
                    continue

                print(f'\n{"=" * 60}')
                print(f'  {path.name}: {len(result.lines)} lines')
                print('=' * 60)
                if args.lines:
                    for i, line in enumerate(result.lines, 1):
                        print(f'{i}. "{line.text}" (conf: {line.confidence:.3f}, y={line.segment.y})')
                else:
                    print(result.text)

                if args.debug_dir:
                    image = decode_image(data)
                    segments = segment_lines(image)
                    log_segmentation_details(image.size, segments)
                    out_dir = Path(args.debug_dir)
                    out_dir.mkdir(parents=True, exist_ok=True)
                    out_path = out_dir / f'{path.stem}_segments.png'
                    visualize_segments(image, segments).save(out_path)
                    print(f'Segmentation overlay saved to: {out_path}')

        return 1 if failures else 0

    sys.exit(asyncio.run(run()))


if __name__ == '__main__':
    main()
