"""Pipeline driver: sequences build, load, tag and push.

States advance strictly forward:

    Building -> Loading -> Tagging -> Pushing -> Done

Any stage failure moves the run into the absorbing ``Failed`` state and
execution stops there. Nothing is retried and nothing is rolled back; a
transient failure is handled by running the whole pipeline again.

If the tag succeeds and the push fails, the local production tag already
points at the new image while the registry still serves the previous one.
That divergence is accepted and reported, and a later successful run
converges both sides.

Precondition: at most one run at a time against the same local container
daemon. Concurrent runs race on the production tag.
"""

from __future__ import annotations

from typing import Protocol

from ship.core.config import ReleaseConfig
from ship.core.result import Err, Ok, Result
from ship.output.console import ConsoleProtocol
from ship.pipeline.errors import (
    BuildFailure,
    LoadFailure,
    PushFailure,
    StageFailure,
    TagFailure,
)
from ship.pipeline.model import (
    Artifact,
    Building,
    Done,
    Failed,
    Loading,
    LocalImageRef,
    PipelineState,
    Pushing,
    Release,
    RemoteImageRef,
    SourceTree,
    Stage,
    TagName,
    Tagging,
)

__all__ = [
    "PackageBuilder",
    "ImageStore",
    "Registry",
    "PipelineDriver",
]


class PackageBuilder(Protocol):
    def build(self, source: SourceTree) -> Result[Artifact, BuildFailure]: ...


class ImageStore(Protocol):
    def load(self, artifact: Artifact) -> Result[LocalImageRef, LoadFailure]: ...

    def tag(self, image: LocalImageRef, tag: TagName) -> Result[None, TagFailure]: ...


class Registry(Protocol):
    def push(self, tag: TagName) -> Result[RemoteImageRef, PushFailure]: ...


class PipelineDriver:
    """Runs one release.

    The driver owns no state besides the current stage; all effects land in
    the container daemon and the registry behind the collaborators.
    """

    def __init__(
        self,
        *,
        config: ReleaseConfig,
        source: SourceTree,
        builder: PackageBuilder,
        images: ImageStore,
        registry: Registry,
        console: ConsoleProtocol,
    ) -> None:
        self._config = config
        self._source = source
        self._builder = builder
        self._images = images
        self._registry = registry
        self._console = console
        self._state: PipelineState = Building()
        self._history: list[Stage] = []
        self._source_digest = ""

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def history(self) -> list[Stage]:
        """Stages entered so far, in order."""
        return list(self._history)

    @property
    def source_digest(self) -> str:
        """Digest of the allow-listed source files, empty until the build stage runs."""
        return self._source_digest

    def build_only(self) -> Result[Artifact, BuildFailure]:
        """Run the package builder and nothing else."""
        self._history.append(Stage.BUILD)
        self._console.header(f"Building {self._config.flake_attr} ({self._config.profile})")
        result = self._build()
        if isinstance(result, Err):
            self._state = Failed(result.error)
        return result

    def release(self) -> Result[Release, StageFailure]:
        """Run all four stages, stopping at the first failure."""
        while True:
            match self._state:
                case Done(release=release):
                    return Ok(release)
                case Failed(failure=failure):
                    self._report_failure(failure)
                    return Err(failure)
                case _:
                    self._state = self._step(self._state)

    def _build(self) -> Result[Artifact, BuildFailure]:
        try:
            self._source_digest = self._source.digest()
        except OSError as e:
            return Err(BuildFailure(f"cannot read source tree: {e.strerror or e}", diagnostic=str(e)))
        self._console.print(f"source digest: {self._source_digest}")
        return self._builder.build(self._source)

    def _step(self, state: PipelineState) -> PipelineState:
        tag = self._config.production_tag

        match state:
            case Building():
                self._history.append(Stage.BUILD)
                self._console.header("Building docker image...")
                match self._build():
                    case Ok(artifact):
                        self._console.print(f"Image built: {artifact.path}")
                        return Loading(artifact=artifact)
                    case Err(failure):
                        return Failed(failure)

            case Loading(artifact=artifact):
                self._history.append(Stage.LOAD)
                self._console.header("Loading image...")
                match self._images.load(artifact):
                    case Ok(image):
                        self._console.print(f"Loaded image: {image}")
                        return Tagging(artifact=artifact, image=image)
                    case Err(failure):
                        return Failed(failure)

            case Tagging(artifact=artifact, image=image):
                self._history.append(Stage.TAG)
                self._console.header(f"Tagging {tag}...")
                match self._images.tag(image, tag):
                    case Ok(_):
                        return Pushing(artifact=artifact, image=image)
                    case Err(failure):
                        return Failed(failure)

            case Pushing(artifact=artifact, image=image):
                self._history.append(Stage.PUSH)
                self._console.header(f"Pushing {tag}...")
                match self._registry.push(tag):
                    case Ok(remote):
                        self._console.success(f"Tag {tag} pushed!")
                        return Done(
                            Release(
                                source_digest=self._source_digest,
                                artifact=artifact,
                                image=image,
                                remote=remote,
                            )
                        )
                    case Err(failure):
                        return Failed(failure)

            case Done() | Failed():
                return state

        raise AssertionError(f"unhandled pipeline state: {state!r}")

    def _report_failure(self, failure: StageFailure) -> None:
        if isinstance(failure, PushFailure):
            tag = self._config.production_tag
            self._console.warning(
                f"local tag {tag} now points at the new image but the registry "
                "still serves the previous one; re-run the release to converge"
            )
