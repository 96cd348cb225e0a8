"""Keyword-based symptom triage.

A coarse routing heuristic, not a diagnosis: substring matches against
per-language keyword lists, scanned in the fixed declaration order of
:data:`SPECIALIZATIONS`.
"""

from __future__ import annotations

import logging

from clinicfinder.config import settings
from clinicfinder.messages import Language, message, resolve_language
from clinicfinder.models import SymptomAssessment, UrgencyLevel
from clinicfinder.services.metrics import MetricsCollector, metrics as default_metrics
from clinicfinder.services.specializations import SPECIALIZATIONS, MedicalSpecialization

logger = logging.getLogger(__name__)


class SymptomClassifier:
    def __init__(
        self,
        specializations: tuple[MedicalSpecialization, ...] = SPECIALIZATIONS,
        emergency_dial_code: str | None = None,
        default_language: str | None = None,
        collector: MetricsCollector | None = None,
    ) -> None:
        self._specializations = specializations
        self._dial_code = emergency_dial_code or settings.emergency_dial_code
        self._default_language = default_language or settings.default_language
        self._metrics = collector or default_metrics

    def specializations(self) -> list[MedicalSpecialization]:
        return list(self._specializations)

    def match(self, text: str, language: Language) -> list[MedicalSpecialization]:
        lowered = text.lower()
        return [
            spec
            for spec in self._specializations
            if any(kw.lower() in lowered for kw in spec.keywords_for(language))
        ]

    def classify(self, text: str, language: str | Language | None = None) -> SymptomAssessment:
        lang = resolve_language(language, self._default_language)
        matched = self.match(text or "", lang)

        urgency = UrgencyLevel.LOW
        for spec in matched:
            if spec.urgency_level.rank > urgency.rank:
                urgency = spec.urgency_level

        assessment = SymptomAssessment(
            specializations=[spec.id for spec in matched],
            urgency_level=urgency,
            recommendations=self._recommendations(matched, urgency, lang),
        )
        self._metrics.inc_triage(urgency.value)
        logger.info(
            "Triage matched %d specializations, urgency=%s",
            len(matched),
            urgency.value,
        )
        return assessment

    def _recommendations(
        self,
        matched: list[MedicalSpecialization],
        urgency: UrgencyLevel,
        language: Language,
    ) -> list[str]:
        recommendations: list[str] = []
        if urgency is UrgencyLevel.EMERGENCY:
            recommendations.append(
                message("triage.emergency", language, dial_code=self._dial_code)
            )
        if matched:
            names = ", ".join(spec.display_name(language) for spec in matched)
            recommendations.append(message("triage.specialist", language, names=names))
        else:
            recommendations.append(message("triage.general_practitioner", language))
        if urgency is UrgencyLevel.HIGH:
            recommendations.append(message("triage.prompt_care", language))
        return recommendations
