"""Pipeline — wires settings, store and capabilities into runnable stages.

One :class:`Pipeline` per process.  It owns the single
:class:`EnrichmentSession`, so a model retired during one pass stays
retired for every later pass run by the same process (the scheduler
daemon runs many).

Example:
    >>> pipeline = Pipeline(InsiderSettings(data_dir="/tmp/insider"))
    >>> await pipeline.collect()
    >>> await pipeline.analyze()
    >>> await pipeline.aclose()
"""

from __future__ import annotations

from insider.analyzer.enrichment import Enricher, EnrichmentSession
from insider.analyzer.generation import TextGenerator
from insider.analyzer.merge import MergeEngine
from insider.analyzer.stage import run_analysis
from insider.collector.github import GitHubSearchClient, SearchFetcher
from insider.collector.stage import run_collection
from insider.core.errors import ConfigError
from insider.core.logging import get_logger
from insider.core.models import Catalog, CollectorConfig, RawBatch
from insider.core.settings import InsiderSettings
from insider.core.storage import CONFIG_KEY, DocumentStore, JsonFileStore
from insider.deploy.stage import run_deploy

logger = get_logger(__name__)


class Pipeline:
    """Composition root for the collect, analyze and deploy stages.

    Capabilities not passed in are built from ``settings`` on first use:
    a :class:`GitHubSearchClient` and a ``GeminiGenerator``.
    """

    def __init__(
        self,
        settings: InsiderSettings,
        *,
        store: DocumentStore | None = None,
        fetcher: SearchFetcher | None = None,
        generator: TextGenerator | None = None,
    ) -> None:
        self.settings = settings
        self.store = store or JsonFileStore(settings.data_dir, config_path=settings.collector_config_path)
        self._fetcher = fetcher
        self._generator = generator
        self._owned_client: GitHubSearchClient | None = None
        self.session = EnrichmentSession(settings.models)
        self._engine: MergeEngine | None = None

    @property
    def fetcher(self) -> SearchFetcher:
        if self._fetcher is None:
            self._owned_client = GitHubSearchClient(
                self.settings.github_token,
                base_url=self.settings.github_api_url,
            )
            self._fetcher = self._owned_client
        return self._fetcher

    @property
    def generator(self) -> TextGenerator:
        if self._generator is None:
            if not self.settings.gemini_api_key:
                raise ConfigError("GEMINI_API_KEY is not set")
            from insider.analyzer.gemini import GeminiGenerator

            self._generator = GeminiGenerator(self.settings.gemini_api_key)
        return self._generator

    @property
    def engine(self) -> MergeEngine:
        if self._engine is None:
            self._engine = MergeEngine(
                Enricher(self.generator, self.session),
                delay_seconds=self.settings.enrichment_delay_seconds,
            )
        return self._engine

    async def load_collector_config(self) -> CollectorConfig:
        return CollectorConfig.from_dict(await self.store.load(CONFIG_KEY))

    async def collect(self, *, force: bool = False) -> RawBatch | None:
        return await run_collection(
            self.store,
            self.fetcher,
            force=force,
            delay_seconds=self.settings.fetch_delay_seconds,
        )

    async def analyze(self) -> Catalog | None:
        return await run_analysis(self.store, self.engine)

    async def deploy(self) -> Catalog | None:
        return await run_deploy(self.store, self.settings.public_dir)

    async def collect_then_analyze(self) -> None:
        """One scheduled run: a collection pass followed by a merge pass."""
        batch = await self.collect()
        if batch is None:
            return
        await self.analyze()

    async def aclose(self) -> None:
        if self._owned_client is not None:
            await self._owned_client.aclose()
            self._owned_client = None
