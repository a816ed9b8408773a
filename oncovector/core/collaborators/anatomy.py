"""
Anatomy Classifiers

Identify the imaged body region of the primary diagnostic image. The label
becomes the anatomy context prefixed to the retrieval query.
"""
import re
from typing import Dict, Optional

from oncovector.core.analysis import ImageInput
from oncovector.core.llm import GeminiClient
from oncovector.utils import get_logger, ClassificationError
from .base import AnatomyClassifier

logger = get_logger(__name__)

# Filename keyword → label, checked in order
DEMO_FILENAME_LABELS: Dict[str, str] = {
    "lung": "Lung",
    "chest": "Chest",
    "cxr": "Chest",
    "thorax": "Chest",
    "brain": "Brain",
    "mri": "Brain",
    "breast": "Breast",
    "mammo": "Breast",
    "colon": "Colon",
    "pancrea": "Pancreas",
    "abdomen": "Abdomen",
    "thyroid": "Thyroid",
    "neck": "Neck",
    "skin": "Skin",
    "derm": "Skin",
    "mole": "Skin",
}

_LABEL_CLEAN_RE = re.compile(r"[^A-Za-z \-/]")
MAX_LABEL_LENGTH = 40


class DemoAnatomyClassifier(AnatomyClassifier):
    """Offline classifier: infers the region from the upload's filename."""

    def __init__(self, default_label: str = "Skin"):
        self.default_label = default_label

    async def classify(self, image: ImageInput) -> str:
        if not image.data:
            raise ClassificationError("Image is empty", details={"filename": image.filename})
        name = (image.filename or "").lower()
        for keyword, label in DEMO_FILENAME_LABELS.items():
            if keyword in name:
                return label
        return self.default_label


class GeminiAnatomyClassifier(AnatomyClassifier):
    """Asks a multimodal Gemini model for the primary anatomical region."""

    PROMPT = (
        "Identify the primary anatomical region or organ shown in this medical image "
        "(for example: Lung, Skin, Brain, Breast, Colon). "
        "Respond with the region name only, one or two words, no punctuation."
    )

    def __init__(self, client: GeminiClient):
        self.client = client

    async def classify(self, image: ImageInput) -> str:
        if not image.data:
            raise ClassificationError("Image is empty", details={"filename": image.filename})

        response = await self.client.generate_async(
            self.PROMPT,
            images=[(image.data, image.mime_type)],
        )
        if response.is_mock:
            raise ClassificationError(
                f"Anatomy classification unavailable: {response.error}",
                details={"model": response.model},
            )

        label = parse_anatomy_label(response.text)
        if not label:
            raise ClassificationError(
                "Classifier returned no usable anatomy label",
                details={"raw_response": response.text[:200]},
            )
        logger.info(f"Anatomy classified as {label} ({response.latency_ms:.0f} ms)")
        return label


def parse_anatomy_label(text: str) -> Optional[str]:
    """First line of the model reply, stripped to letters and title-cased."""
    for line in (text or "").splitlines():
        cleaned = " ".join(_LABEL_CLEAN_RE.sub(" ", line).split())
        if cleaned:
            return cleaned[:MAX_LABEL_LENGTH].strip().title()
    return None
