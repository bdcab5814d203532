"""
Detection loop for the live detector.

Sequences preprocess -> inference -> decode -> render once per display
refresh while running. The loop is the only component with lifecycle state;
the stages are per-call transforms.

States: IDLE -> STARTING -> RUNNING -> (STOPPING) -> IDLE, plus ERROR which is
reachable from STARTING or RUNNING and allows a fresh start.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional, Tuple

from inference.backend import InferenceBackend, expect_raw_detections
from models.config import Config
from models.errors import DetectorError, InferenceFailure, describe_error
from models.status import LoopState, LoopStats, LoopStatus
from observation import ObservationSource, create_source_from_config
from runtime.context import PipelineContext
from pipeline.display import DisplaySink
from pipeline.stages.decode import DecodeStage, DecodeStageConfig, first_rows
from pipeline.stages.preprocess import PreprocessStage
from pipeline.stages.render import RenderStage


StatusSink = Callable[[str], None]


class DetectionLoop:
    """
    Cooperative detection loop driven by an asyncio task.

    At most one inference call is ever in flight: each tick awaits its
    inference before rendering, and the next tick is scheduled only after the
    previous one has completed.

    Example:
        loop = create_loop_from_config(config, display=WindowDisplay())
        await loop.start()
        await loop.join()
    """

    def __init__(
        self,
        config: Config,
        backend_factory: Callable[[], InferenceBackend],
        source_factory: Callable[[], ObservationSource],
        display: Optional[DisplaySink] = None,
        status_sink: Optional[StatusSink] = None,
    ):
        self.config = config
        self.ctx = PipelineContext()
        self._backend_factory = backend_factory
        self._source_factory = source_factory
        self._display = display
        self._status_sink = status_sink
        self._task: Optional[asyncio.Task] = None
        # Model load shared by every start that arrives while it is pending
        self._backend_load: Optional[asyncio.Task] = None
        # Bumped by every start/stop so a superseded start can tell it was cancelled
        self._generation = 0

        model_cfg = config.model
        self._preprocess = PreprocessStage(model_cfg.input_size)
        self._decode = DecodeStage(
            DecodeStageConfig(
                conf_threshold=model_cfg.conf_threshold,
                class_names=list(model_cfg.class_names),
                coordinate_format=model_cfg.coordinate_format,
            )
        )
        self._render = RenderStage()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> LoopState:
        return self.ctx.state

    @property
    def running(self) -> bool:
        return self.ctx.running

    def status(self) -> LoopStatus:
        """Snapshot for the UI adapter."""
        return self.ctx.snapshot()

    def _set_state(self, state: LoopState) -> None:
        if state != self.ctx.state:
            logging.debug(f"Detection loop {self.ctx.state.value} -> {state.value}")
        self.ctx.state = state

    def _status(self, message: str) -> None:
        self.ctx.message = message
        logging.info(f"[STATUS] {message}")
        if self._status_sink is not None:
            self._status_sink(message)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def start(self) -> bool:
        """
        Acquire the inference session and the camera, then schedule ticks.

        Returns False without doing anything if the loop is already starting
        or running. Failures move the loop to ERROR.
        """
        if self.ctx.state in (LoopState.STARTING, LoopState.RUNNING, LoopState.STOPPING):
            logging.info(f"Start ignored: loop is {self.ctx.state.value}")
            return False

        # A tick from the previous run may still be awaiting inference.
        if self._task is not None and not self._task.done():
            await self._task

        self._generation += 1
        generation = self._generation
        self._set_state(LoopState.STARTING)
        self.ctx.error = None
        self._status("Starting...")

        source: Optional[ObservationSource] = None
        try:
            source = self._source_factory()
            source.check_environment()

            await self._ensure_backend()

            if generation != self._generation:
                logging.info("Start cancelled before the camera was opened")
                return False

            self._status("Opening camera...")
            await asyncio.to_thread(source.open)
        except Exception as e:
            if source is not None:
                source.close()
            if generation != self._generation:
                logging.info(f"Ignoring failure of a cancelled start: {describe_error(e)}")
                return False
            self.on_error(e)
            return False

        if generation != self._generation:
            source.close()
            logging.info("Start cancelled after the camera was opened")
            return False

        self.ctx.source = source
        self.ctx.stats = LoopStats()
        self.ctx.last_detections = []
        self.ctx.running = True
        self._set_state(LoopState.RUNNING)
        self._status("Running detection...")

        self._task = asyncio.create_task(self.run())
        return True

    async def _ensure_backend(self) -> None:
        """Load the inference session once; concurrent starts await the same load."""
        if self.ctx.backend is not None:
            logging.info("Reusing existing inference session")
            return

        if self._backend_load is None:
            self._status("Loading model...")
            self._backend_load = asyncio.create_task(asyncio.to_thread(self._backend_factory))
        load = self._backend_load
        try:
            backend = await asyncio.shield(load)
        finally:
            if self._backend_load is load:
                self._backend_load = None

        if self.ctx.backend is None:
            self.ctx.backend = backend
            logging.info(
                f"Inference session ready: input={backend.input_name}, "
                f"output={backend.output_name}"
            )

    def stop(self) -> bool:
        """
        Stop the loop and release the camera.

        Returns False if there was nothing to stop. An inference call already
        in flight is left to finish; its result is discarded.
        """
        if self.ctx.state in (LoopState.IDLE, LoopState.ERROR, LoopState.STOPPING):
            return False

        self._generation += 1
        self._set_state(LoopState.STOPPING)
        self.ctx.running = False
        self._release_source()
        self._set_state(LoopState.IDLE)
        self._status("Stopped.")
        return True

    def on_error(self, exc: BaseException) -> None:
        """Move to ERROR: stop ticking, release the camera, report the cause."""
        self.ctx.running = False
        self._release_source()
        self.ctx.error = describe_error(exc)
        self._set_state(LoopState.ERROR)
        if isinstance(exc, DetectorError):
            logging.error(f"Detection loop error: {self.ctx.error}")
        else:
            logging.exception(f"Unexpected detection loop error: {self.ctx.error}", exc_info=exc)
        self._status(f"ERROR: {self.ctx.error}")

    def _release_source(self) -> None:
        source, self.ctx.source = self.ctx.source, None
        if source is None:
            return
        try:
            source.close()
        except Exception as e:
            logging.warning(f"Error closing source: {e}")

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Drive ticks until the running flag is cleared."""
        interval = self.config.loop.frame_interval
        while self.ctx.running:
            if not await self.tick():
                break
            await asyncio.sleep(interval)

    async def join(self) -> None:
        """Wait for the current run to finish."""
        if self._task is not None:
            await self._task

    def _display_size(self, source_w: int, source_h: int) -> Tuple[int, int]:
        resolution = self.config.display.resolution
        if resolution:
            return int(resolution[0]), int(resolution[1])
        return source_w, source_h

    async def tick(self) -> bool:
        """
        Run the pipeline once on the current frame.

        Returns True when another tick should be scheduled.
        """
        ctx = self.ctx
        source = ctx.source
        if not ctx.running or source is None:
            return False

        try:
            # stop() may close the source while this read is in progress
            frame_data = await asyncio.to_thread(source.read)
            if not ctx.running:
                return False
            if frame_data is None or not frame_data.is_ready:
                ctx.stats.skipped_ticks += 1
                return True

            source_w, source_h = frame_data.width, frame_data.height
            display_w, display_h = self._display_size(source_w, source_h)

            prepared = self._preprocess.process(frame_data.frame, source_w, source_h)

            started = time.perf_counter()
            try:
                raw = await ctx.backend.run(prepared.tensor)
            except DetectorError:
                raise
            except Exception as e:
                raise InferenceFailure("Inference call failed", cause=e) from e
            inference_ms = (time.perf_counter() - started) * 1000

            if not ctx.running:
                logging.debug("Discarding inference result: loop stopped while it was running")
                return False

            raw = expect_raw_detections(raw)
            self._log_output_sample(raw)

            detections = self._decode.decode(
                raw, prepared.transform, source_w, source_h, display_w, display_h
            )
            surface = self._render.render(frame_data.frame, detections, (display_w, display_h))

            keep_going = True
            if self._display is not None:
                keep_going = self._display.show(surface)

            ctx.last_detections = detections
            ctx.stats.record_tick(len(detections), inference_ms)
        except Exception as e:
            if not ctx.running:
                logging.debug(f"Discarding failure: loop stopped while it was running ({describe_error(e)})")
                return False
            self.on_error(e)
            return False

        if not keep_going:
            logging.info("Display closed by user")
            self.stop()
            return False
        return True

    def _log_output_sample(self, raw) -> None:
        now = time.monotonic()
        if now - self.ctx.last_output_log >= self.config.loop.output_log_interval:
            logging.debug(f"Output sample: {first_rows(raw, 2)}")
            self.ctx.last_output_log = now


def create_loop_from_config(
    config: Config,
    display: Optional[DisplaySink] = None,
    status_sink: Optional[StatusSink] = None,
) -> DetectionLoop:
    """
    Factory function to create a DetectionLoop from a typed Config.
    """
    from inference.onnx_backend import create_backend_from_config

    return DetectionLoop(
        config=config,
        backend_factory=lambda: create_backend_from_config(config.model),
        source_factory=lambda: create_source_from_config(config.camera, source_id="main-camera"),
        display=display,
        status_sink=status_sink,
    )
