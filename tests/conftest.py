"""Pytest configuration and fixtures for blastradius tests."""

from pathlib import Path
from typing import Generator, Iterable, Tuple

import pytest

from blastradius.analyzer import ImpactAnalyzer
from blastradius.cache import ResultCache
from blastradius.config import AnalysisSettings
from blastradius.models import DependencyGraph, GraphEdge, GraphNode
from blastradius.storage import GraphStore


def make_graph(edges: Iterable[Tuple[str, str]], extra_nodes: Iterable[str] = ()) -> DependencyGraph:
    """Build a graph from ``(source, target)`` pairs; source imports target."""
    edges = list(edges)
    ids = []
    for node_id in [n for pair in edges for n in pair] + list(extra_nodes):
        if node_id not in ids:
            ids.append(node_id)
    return DependencyGraph(
        nodes=[GraphNode(id=i, path=i, label=i.rsplit("/", 1)[-1]) for i in ids],
        edges=[GraphEdge(source=s, target=t) for s, t in edges],
    )


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch):
    """Point the config file at a temp dir so tests never touch ~/.blastradius."""
    config_file = tmp_path / "home" / "config.toml"
    monkeypatch.setattr("blastradius.config.CONFIG_FILE", config_file)
    return config_file


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> GraphStore:
    return GraphStore()


@pytest.fixture
def chain_store() -> GraphStore:
    """fileA <- fileB <- fileC (B imports A, C imports B)."""
    store = GraphStore()
    store.load(make_graph([("fileB", "fileA"), ("fileC", "fileB")]))
    return store


@pytest.fixture
def cycle_store() -> GraphStore:
    """X imports Y, Y imports Z, Z imports X."""
    store = GraphStore()
    store.load(make_graph([("X", "Y"), ("Y", "Z"), ("Z", "X")]))
    return store


@pytest.fixture
def long_chain_store() -> GraphStore:
    """n0 <- n1 <- ... <- n7."""
    store = GraphStore()
    store.load(make_graph([(f"n{i + 1}", f"n{i}") for i in range(7)]))
    return store


@pytest.fixture
def sample_graph_path() -> Path:
    return Path(__file__).parent / "fixtures" / "sample_graph.json"


@pytest.fixture
def settings() -> AnalysisSettings:
    return AnalysisSettings(cache_sweep_interval_s=0)


@pytest.fixture
def cache(clock: FakeClock) -> Generator[ResultCache, None, None]:
    cache = ResultCache(sweep_interval_s=0, clock=clock)
    yield cache
    cache.close()


@pytest.fixture
def make_analyzer(settings: AnalysisSettings):
    """Factory for analyzers that share test settings and get closed afterwards."""
    created = []

    def _make(store: GraphStore, **kwargs) -> ImpactAnalyzer:
        kwargs.setdefault("settings", settings)
        analyzer = ImpactAnalyzer(store, **kwargs)
        created.append(analyzer)
        return analyzer

    yield _make
    for analyzer in created:
        analyzer.close()
