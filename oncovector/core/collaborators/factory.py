"""
Collaborator Factory

Single place where demo vs live is decided. The pipeline only ever sees the
abstract interfaces.
"""
from typing import Optional

from oncovector.config import Settings, settings as default_settings
from oncovector.core.llm import GeminiClient, GeminiConfig
from oncovector.utils import get_logger
from .anatomy import DemoAnatomyClassifier, GeminiAnatomyClassifier
from .base import Collaborators
from .health_probe import DemoRegistryHealthProbe, HttpRegistryHealthProbe
from .synthesizer import DemoReasoningSynthesizer, GeminiReasoningSynthesizer

logger = get_logger(__name__)


def build_collaborators(config: Optional[Settings] = None) -> Collaborators:
    config = config or default_settings

    if config.use_demo_collaborators:
        logger.info("Collaborators: demo mode (offline classifier, synthetic registry probe, template synthesis)")
        return Collaborators(
            classifier=DemoAnatomyClassifier(),
            health_probe=DemoRegistryHealthProbe(seed=config.demo_jitter_seed),
            synthesizer=DemoReasoningSynthesizer(),
            mode="demo",
        )

    vision_client = GeminiClient(GeminiConfig(
        api_key=config.gemini_api_key,
        model=config.gemini_model,
        temperature=0.0,
        max_output_tokens=32,
        request_timeout_seconds=config.gemini_timeout_seconds,
    ))
    reasoning_client = GeminiClient(GeminiConfig(
        api_key=config.gemini_api_key,
        model=config.gemini_model,
        temperature=config.gemini_temperature,
        response_mime_type="application/json",
        request_timeout_seconds=config.gemini_timeout_seconds,
    ))

    if config.registry_nodes:
        probe = HttpRegistryHealthProbe(
            config.registry_nodes,
            timeout_seconds=config.probe_timeout_seconds,
            degraded_latency_ms=config.probe_degraded_latency_ms,
        )
    else:
        # No remote nodes to check: the registry is the local snapshot
        logger.warning("No registry_nodes configured - registry probe reports synthetic status")
        probe = DemoRegistryHealthProbe(seed=config.demo_jitter_seed)

    logger.info(f"Collaborators: live mode (Gemini model {config.gemini_model})")
    return Collaborators(
        classifier=GeminiAnatomyClassifier(vision_client),
        health_probe=probe,
        synthesizer=GeminiReasoningSynthesizer(reasoning_client, max_cases=config.retrieval_top_k),
        mode="live",
    )
