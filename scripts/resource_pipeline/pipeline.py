"""
Build pipeline coordinator.
Runs the load, resolve, assemble and write steps against one resource store.
"""

import time
import logging
from enum import Enum
from typing import Dict, List, Optional, Any, Callable, Iterator
from dataclasses import dataclass, field
from contextlib import contextmanager

from .config import LOG_LEVELS, BuildConfig
from .codec import Spritesheet, Texture
from .descriptors import AnimationDescriptor, SpritesheetDescriptor
from .errors import BuildError
from .loader import (
    load_animation_file, load_spritesheet_meta, scan_project,
    scan_spritesheet_images, spritesheet_id,
)
from .processing.assembler import assemble
from .processing.frames import FrameOrigin
from .processing.resolver import ReferenceResolver, create_resolver
from .processing.tags import build_tag_index
from .processing.writer import StoreWriter
from .store import ANIMATIONS, PICTURES, SPRITESHEETS, TAGS, TEXTURES, ResourceStore, Transaction
from .utils.image import ImageUtils


class PipelineStep(Enum):
    """Enumeration of pipeline steps."""
    LOAD = "load"
    BUCKETS = "buckets"
    SPRITESHEETS = "spritesheets"
    ANIMATIONS = "animations"
    TAGS = "tags"
    INGEST = "ingest"


@dataclass
class StepResult:
    """Result of a pipeline step execution."""
    step: PipelineStep
    success: bool
    duration: float
    message: str
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class BuildState:
    """Current state of a build run."""
    current_step: Optional[PipelineStep] = None
    completed_steps: List[PipelineStep] = field(default_factory=list)
    failed_step: Optional[PipelineStep] = None
    step_results: Dict[PipelineStep, StepResult] = field(default_factory=dict)
    start_time: Optional[float] = None
    descriptors_loaded: int = 0
    pictures_written: int = 0
    animations_written: int = 0
    tags_written: int = 0

    @property
    def succeeded(self) -> bool:
        return self.failed_step is None


class BuildPipeline:
    """
    Coordinates one build run.

    Steps run strictly in order and the first failure aborts the run. By
    default every animation is resolved, assembled and written, together
    with its tag entry, inside its own write transaction, and the complete
    tag index is written last in a final transaction. A failed run never
    leaves a half-written animation, a tag naming an animation that was not
    stored, or a stored animation missing from its tag. With
    ``config.atomic`` the whole run shares a single transaction instead.
    """

    def __init__(self, config: BuildConfig, store: Optional[ResourceStore] = None):
        """
        Initialize the build pipeline.

        Args:
            config: Build configuration
            store: Already constructed store; opened from config.output if omitted
        """
        self.config = config
        self.state = BuildState()
        self.logger = self._setup_logging()
        self.writer = StoreWriter()

        self._store = store
        self._shared_tx: Optional[Transaction] = None

        self._descriptors: List[AnimationDescriptor] = []
        self._spritesheets: Dict[str, SpritesheetDescriptor] = {}

        self._step_handlers: Dict[PipelineStep, Callable[[], Dict[str, Any]]] = {
            PipelineStep.LOAD: self._execute_load_step,
            PipelineStep.BUCKETS: self._execute_buckets_step,
            PipelineStep.SPRITESHEETS: self._execute_spritesheets_step,
            PipelineStep.ANIMATIONS: self._execute_animations_step,
            PipelineStep.TAGS: self._execute_tags_step,
            PipelineStep.INGEST: self._execute_ingest_step,
        }

    def _setup_logging(self) -> logging.Logger:
        """Set up logging for the pipeline."""
        logger = logging.getLogger("resource_pipeline")

        # Unknown names are reported by config.validate() when the run starts
        level = self.config.log_level.upper()
        if level in LOG_LEVELS:
            logger.setLevel(level)

        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            logger.addHandler(handler)

        return logger

    @property
    def descriptors(self) -> List[AnimationDescriptor]:
        return list(self._descriptors)

    def build_steps(self) -> List[PipelineStep]:
        """Steps of a build in execution order for the configured mode."""
        steps = [PipelineStep.LOAD, PipelineStep.BUCKETS]
        if self.config.mode == "embedded":
            steps.append(PipelineStep.SPRITESHEETS)
        steps.extend([PipelineStep.ANIMATIONS, PipelineStep.TAGS])
        return steps

    def run(self) -> BuildState:
        """
        Run a full build.

        Returns:
            Final build state

        Raises:
            BuildError: On the first failing step, with ``step`` set
        """
        return self._run(self.build_steps(), "build")

    def ingest(self) -> BuildState:
        """
        Populate the pictures, textures and spritesheets buckets from the
        spritesheets directory, as expected by indexed builds.
        """
        return self._run([PipelineStep.INGEST], "ingest")

    def _run(self, steps: List[PipelineStep], label: str) -> BuildState:
        errors = self.config.validate()
        if errors:
            raise BuildError(f"invalid configuration: {'; '.join(errors)}")

        self.logger.info(f"Starting resource {label} into {self.config.output}")
        self.state.start_time = time.time()

        with self._open_store() as store:
            with self._run_scope(store):
                for step in steps:
                    self._execute_step(step)

        self._log_summary(label)
        return self.state

    @contextmanager
    def _open_store(self) -> Iterator[ResourceStore]:
        if self._store is not None and self._store.is_open:
            yield self._store
            return

        store = self._store or ResourceStore(self.config.output)
        store.open()
        self._store = store
        try:
            yield store
        finally:
            store.close()

    @contextmanager
    def _run_scope(self, store: ResourceStore) -> Iterator[None]:
        """Holds the run-wide transaction in atomic mode."""
        if not self.config.atomic:
            yield
            return

        with store.transaction() as tx:
            self._shared_tx = tx
            try:
                yield
            finally:
                self._shared_tx = None

    @contextmanager
    def _unit(self) -> Iterator[Transaction]:
        """Transaction for one logical unit of work."""
        if self._shared_tx is not None:
            yield self._shared_tx
            return

        with self._store.transaction() as tx:
            yield tx

    def _execute_step(self, step: PipelineStep) -> None:
        """
        Execute a single pipeline step with error handling and timing.

        Args:
            step: Step to execute
        """
        self.state.current_step = step
        self.logger.info(f"Executing step: {step.value}")

        start_time = time.time()

        try:
            data = self._step_handlers[step]()
        except Exception as e:
            duration = time.time() - start_time
            self.state.step_results[step] = StepResult(
                step=step,
                success=False,
                duration=duration,
                message=f"Step {step.value} failed: {e}",
            )
            self.state.failed_step = step
            self.logger.error(f"Step {step.value} failed after {duration:.2f}s: {e}")

            if isinstance(e, BuildError) and e.step is None:
                e.step = step.value
            raise

        duration = time.time() - start_time
        self.state.step_results[step] = StepResult(
            step=step,
            success=True,
            duration=duration,
            message=f"Step {step.value} completed successfully",
            data=data,
        )
        self.state.completed_steps.append(step)
        self.logger.info(f"Step {step.value} completed in {duration:.2f}s")

    # Step execution methods
    def _execute_load_step(self) -> Dict[str, Any]:
        """Load animation descriptors and, for embedded builds, spritesheet metadata."""
        if self.config.scans_project:
            self._descriptors = scan_project(self.config.project_root, self.config.descriptor_suffix)
        else:
            self._descriptors = load_animation_file(self.config.animations_meta)

        if self.config.mode == "embedded":
            self._spritesheets = load_spritesheet_meta(self.config.spritesheets_meta)

        seen = set()
        for descriptor in self._descriptors:
            if descriptor.name in seen:
                self.logger.warning(
                    f"Animation '{descriptor.name}' is declared more than once; "
                    f"the last declaration wins"
                )
            seen.add(descriptor.name)

        self.state.descriptors_loaded = len(self._descriptors)
        self.logger.info(f"Loaded {len(self._descriptors)} animation descriptors")
        return {
            "descriptors": len(self._descriptors),
            "spritesheets": len(self._spritesheets),
        }

    def _execute_buckets_step(self) -> Dict[str, Any]:
        """Create the buckets this build writes to."""
        if self.config.mode == "embedded":
            buckets = [SPRITESHEETS, ANIMATIONS, TAGS]
        else:
            # Indexed builds read spritesheets, textures and pictures written earlier
            buckets = [ANIMATIONS, TAGS]

        with self._unit() as tx:
            self.writer.ensure_buckets(tx, buckets)

        return {"buckets": buckets}

    def _execute_spritesheets_step(self) -> Dict[str, Any]:
        """Store each spritesheet image as a compressed picture keyed by file stem."""
        images = scan_spritesheet_images(self.config.spritesheets_dir)

        for path in images:
            picture = ImageUtils.load_picture(path)
            key = spritesheet_id(path)
            with self._unit() as tx:
                self.writer.put_picture(tx, key, picture, bucket=SPRITESHEETS)
            self.state.pictures_written += 1
            self.logger.debug(f"Stored spritesheet '{key}' ({picture.width}x{picture.height})")

        return {"spritesheets_written": len(images)}

    def _execute_animations_step(self) -> Dict[str, Any]:
        """
        Resolve, assemble and store every animation.

        The animation's tag entry is rewritten in the same transaction with
        the names stored so far, so a run that fails part way never leaves
        a stored animation missing from its tag.
        """
        resolver = self._create_resolver()
        tagged: Dict[str, List[str]] = {}

        for descriptor in self._descriptors:
            with self._unit() as tx:
                grid = resolver.resolve(tx, descriptor)
                record = assemble(descriptor, grid)
                self.writer.put_animation(tx, descriptor.name, record)
                names = tagged.setdefault(descriptor.tag, [])
                names.append(descriptor.name)
                self.writer.put_tag(tx, descriptor.tag, names)
            self.state.animations_written += 1
            self.logger.debug(
                f"Stored animation '{descriptor.name}' with {len(record.frames)} frames"
            )

        return {"animations_written": self.state.animations_written}

    def _execute_tags_step(self) -> Dict[str, Any]:
        """Invert animation tags and write the tag index."""
        index = build_tag_index(self._descriptors)

        with self._unit() as tx:
            self.writer.put_tags(tx, index)

        self.state.tags_written = len(index)
        return {"tags_written": len(index)}

    def _execute_ingest_step(self) -> Dict[str, Any]:
        """Write picture, texture and spritesheet records for each image."""
        images = scan_spritesheet_images(self.config.spritesheets_dir)
        self._spritesheets = load_spritesheet_meta(self.config.spritesheets_meta)

        sheets_written = 0
        for path in images:
            key = spritesheet_id(path)
            picture = ImageUtils.load_picture(path)
            meta = self._spritesheets.get(key)

            with self._unit() as tx:
                self.writer.put_picture(tx, key, picture, bucket=PICTURES)
                self.writer.put_texture(tx, key, Texture(picture_id=key, filter=self.config.texture_filter))
                if meta is not None:
                    self.writer.put_spritesheet(tx, key, Spritesheet(meta.width, meta.height))
                    sheets_written += 1

            if meta is None:
                self.logger.warning(f"No spritesheet metadata for '{key}'; stored picture and texture only")
            self.state.pictures_written += 1

        # Buckets exist even when the directory is empty
        with self._unit() as tx:
            self.writer.ensure_buckets(tx, [PICTURES, TEXTURES, SPRITESHEETS])

        return {"pictures_written": len(images), "spritesheets_written": sheets_written}

    def _create_resolver(self) -> ReferenceResolver:
        return create_resolver(self.config.mode, FrameOrigin(self.config.origin), self._spritesheets)

    def _log_summary(self, label: str) -> None:
        """Log execution summary."""
        total_duration = time.time() - (self.state.start_time or time.time())

        self.logger.info("=" * 60)
        self.logger.info(f"RESOURCE {label.upper()} SUMMARY")
        self.logger.info("=" * 60)
        self.logger.info(f"Total execution time: {total_duration:.2f}s")
        self.logger.info(f"Descriptors loaded: {self.state.descriptors_loaded}")
        self.logger.info(f"Pictures written: {self.state.pictures_written}")
        self.logger.info(f"Animations written: {self.state.animations_written}")
        self.logger.info(f"Tags written: {self.state.tags_written}")

        for step, result in self.state.step_results.items():
            status = "✓" if result.success else "✗"
            self.logger.info(f"  {status} {step.value}: {result.duration:.2f}s")

        self.logger.info("=" * 60)


def run_build(config: BuildConfig, store: Optional[ResourceStore] = None) -> BuildState:
    """Convenience entry point: build with the given configuration."""
    return BuildPipeline(config, store).run()
