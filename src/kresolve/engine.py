"""
The expansion engine resolves locators breadth-first until only plain Kubernetes manifests remain.
"""

from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

from loguru import logger

from kresolve.errors import DepthExceededError, KResolveError, ResolutionError
from kresolve.generator import Generator, Outputs, ResolutionContext
from kresolve.resources import ANNOTATION_DEPTH, ANNOTATION_FORMAT, ANNOTATION_ORIGIN, KResource
from kresolve.tools.nodes import get_annotations, manifest_key
from kresolve.tools.types import Manifest, Manifests

DEFAULT_MAX_DEPTH = 100


def stamp_provenance(manifest: Manifest, origin: str, format: str, depth: int) -> None:
    """
    Record where a manifest was produced. Existing provenance annotations are overwritten.
    """

    annotations = get_annotations(manifest, create=True)
    assert annotations is not None
    annotations[ANNOTATION_ORIGIN] = origin
    annotations[ANNOTATION_FORMAT] = format
    annotations[ANNOTATION_DEPTH] = str(depth)


@dataclass
class ExpansionEngine:
    """
    Expands locators into a flat collection of manifests.

    The engine works level by level: all locators at the same depth are resolved (concurrently, if *workers* is
    greater than one) before any locator at the next depth. Results are appended in the order the locators were
    queued, regardless of the order in which their resolution completes. Only the calling thread modifies the queue
    and the result collection.

    Recursion is bounded solely by *max_depth*; there is no cycle detection.
    """

    generator: Generator
    """ The generator that resolves locators, usually a `DispatchingGenerator`. """

    max_depth: int = DEFAULT_MAX_DEPTH
    working_dir: Path = field(default_factory=Path.cwd)
    stdin: TextIO | None = None
    workers: int = 4

    def expand(self, items: Sequence[Manifest | KResource]) -> Manifests:
        """
        Resolve *items* into manifests.

        Plain manifests in *items* are terminal and passed through unchanged. Every manifest produced by a locator is
        stamped with the locator's origin and format and the depth it was resolved at. Manifests sharing the same
        `(apiVersion, kind, namespace, name)` are merged; the one resolved last wins and takes the position of the
        first.

        Raises:
            DepthExceededError: If a locator would have to be resolved deeper than *max_depth*.
            ResolutionError: If resolving a locator fails. No partial result is returned.
        """

        result: dict[object, Manifest] = {}
        level: list[Manifest | KResource] = list(items)
        depth = 0

        def append(manifest: Manifest) -> None:
            key = manifest_key(manifest)
            if key is None:
                result[object()] = manifest
                return
            if key in result:
                logger.debug("{}/{} was produced more than once, the last one wins", key[1], key[3])
            result[key] = manifest

        with ThreadPoolExecutor(max_workers=max(1, self.workers)) as executor:
            while level:
                entries = [self._as_locator(item, depth) for item in level]
                locators = [entry for entry in entries if isinstance(entry, KResource)]
                if locators and depth > self.max_depth:
                    raise DepthExceededError(locators[0].origin(), depth, self.max_depth)

                ctx = ResolutionContext(
                    depth=depth, max_depth=self.max_depth, working_dir=self.working_dir, stdin=self.stdin
                )
                futures = [executor.submit(self._resolve, locator, ctx) for locator in locators]

                try:
                    next_level: list[Manifest | KResource] = []
                    pending = iter(futures)
                    for entry in entries:
                        if not isinstance(entry, KResource):
                            append(entry)
                            continue

                        outputs = self._collect(entry, next(pending), depth)
                        for output in outputs:
                            if isinstance(output, KResource) or (not entry.RENDERED and KResource.matches(output)):
                                next_level.append(output)
                            else:
                                stamp_provenance(output, entry.origin(), entry.format(), depth)
                                append(output)
                finally:
                    for future in futures:
                        future.cancel()

                level = next_level
                depth += 1

        return Manifests(list(result.values()))

    def _as_locator(self, item: Manifest | KResource, depth: int) -> Manifest | KResource:
        if isinstance(item, KResource):
            return item
        try:
            return KResource.maybe_load(item) or item
        except KResolveError as exc:
            raise ResolutionError(f"{item.get('kind')} locator", depth, exc)

    def _resolve(self, locator: KResource, ctx: ResolutionContext) -> Outputs:
        logger.debug("Resolving {} {} at depth {}", locator.KIND, locator.origin(), ctx.depth)
        return self.generator.generate(locator, ctx)

    def _collect(self, locator: KResource, future: "Future[Outputs]", depth: int) -> Outputs:
        try:
            return future.result()
        except DepthExceededError:
            raise
        except KResolveError as exc:
            raise ResolutionError(locator.origin(), depth, exc)
