"""
Registry Health Probes

Report reachability of the research registry nodes backing the case
registry. The live probe is fatal to the pipeline when no node answers; the
demo probe always succeeds with a synthetic node list.
"""
import asyncio
import random
import time
from typing import List, Optional, Sequence, Tuple

import httpx

from oncovector.utils import get_logger, RegistryUnavailableError
from .base import NodeStatus, RegistryHealthProbe, RegistryNodeHealth

logger = get_logger(__name__)

DEMO_REGISTRY_NODES: Tuple[Tuple[str, int], ...] = (
    # (node name, nominal latency ms)
    ("NIH Clinical Center", 42),
    ("TCIA - NLST", 58),
    ("TCIA - LIDC-IDRI", 61),
    ("TCIA - TCGA-GBM", 73),
    ("TCIA - CBIS-DDSM", 66),
    ("TCIA - Pancreas-CT", 80),
    ("ISIC Archive", 37),
    ("NCI Genomic Data Commons", 95),
    ("SEER Registry", 88),
    ("MIMIC-IV Imaging", 104),
    ("PubMed Central Case Reports", 49),
    ("ClinicalTrials.gov", 55),
)


class DemoRegistryHealthProbe(RegistryHealthProbe):
    """
    Synthetic, always-online node list for offline demos.

    Latency jitter is cosmetic and drawn from a private seeded generator so
    it never shares state with anything that affects ranking.
    """

    def __init__(
        self,
        seed: int = 1337,
        nodes: Sequence[Tuple[str, int]] = DEMO_REGISTRY_NODES,
        jitter_ms: int = 15,
    ):
        self._rng = random.Random(seed)
        self.nodes = tuple(nodes)
        self.jitter_ms = jitter_ms

    async def check(self) -> List[RegistryNodeHealth]:
        return [
            RegistryNodeHealth(
                node_name=name,
                status=NodeStatus.ONLINE,
                latency_ms=max(1, base + self._rng.randint(-self.jitter_ms, self.jitter_ms)),
            )
            for name, base in self.nodes
        ]


def parse_node_target(entry: str) -> Tuple[str, str]:
    """'Name=https://host/health' or a bare URL (named after its host)."""
    if "=" in entry and not entry.lstrip().lower().startswith(("http://", "https://")):
        name, url = entry.split("=", 1)
        return name.strip(), url.strip()
    url = entry.strip()
    return httpx.URL(url).host or url, url


class HttpRegistryHealthProbe(RegistryHealthProbe):
    """Concurrent HTTP GET against each configured node."""

    def __init__(
        self,
        nodes: Sequence[str],
        timeout_seconds: float = 5.0,
        degraded_latency_ms: int = 1500,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.nodes = [parse_node_target(entry) for entry in nodes]
        self.timeout_seconds = timeout_seconds
        self.degraded_latency_ms = degraded_latency_ms
        self._transport = transport

    async def check(self) -> List[RegistryNodeHealth]:
        if not self.nodes:
            raise RegistryUnavailableError("No registry nodes configured")

        async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
            results = await asyncio.gather(*(self._probe(client, name, url) for name, url in self.nodes))

        reachable = [r for r in results if r.status != NodeStatus.OFFLINE]
        if not reachable:
            raise RegistryUnavailableError(
                "All registry nodes are offline",
                details={"nodes": [r.node_name for r in results]},
            )
        logger.info(f"Registry probe: {len(reachable)}/{len(results)} nodes reachable")
        return list(results)

    async def _probe(self, client: httpx.AsyncClient, name: str, url: str) -> RegistryNodeHealth:
        start = time.perf_counter()
        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            logger.warning(f"Registry node {name} unreachable: {e}")
            return RegistryNodeHealth(node_name=name, status=NodeStatus.OFFLINE, latency_ms=0)

        latency_ms = int((time.perf_counter() - start) * 1000)
        if response.status_code >= 500:
            status = NodeStatus.OFFLINE
        elif response.status_code >= 400 or latency_ms > self.degraded_latency_ms:
            status = NodeStatus.DEGRADED
        else:
            status = NodeStatus.ONLINE
        return RegistryNodeHealth(node_name=name, status=status, latency_ms=latency_ms)
