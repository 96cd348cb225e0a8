"""User-facing text in every supported language (English and Tamil)."""

from __future__ import annotations

from enum import Enum


class Language(str, Enum):
    ENGLISH = "en"
    TAMIL = "ta"


_ALIASES: dict[str, Language] = {
    "en": Language.ENGLISH,
    "english": Language.ENGLISH,
    "ta": Language.TAMIL,
    "tamil": Language.TAMIL,
}

_MESSAGES: dict[str, dict[Language, str]] = {
    "location.permission_denied": {
        Language.ENGLISH: (
            "Please allow location access to find nearby clinics. "
            "Check your browser settings and grant permission."
        ),
        Language.TAMIL: (
            "அருகிலுள்ள கிளினிக்குகளைக் கண்டறிய இருப்பிட அணுகலை அனுமதிக்கவும். "
            "உங்கள் உலாவி அமைப்புகளைச் சரிபார்த்து அனுமதி வழங்கவும்."
        ),
    },
    "location.position_unavailable": {
        Language.ENGLISH: (
            "Unable to determine your location. "
            "Please check your GPS or network settings."
        ),
        Language.TAMIL: (
            "உங்கள் இருப்பிடத்தை தீர்மானிக்க முடியவில்லை. "
            "உங்கள் GPS அல்லது நெட்வொர்க் அமைப்புகளைச் சரிபார்க்கவும்."
        ),
    },
    "location.timeout": {
        Language.ENGLISH: (
            "Location request timed out. "
            "Please check your internet connection and try again."
        ),
        Language.TAMIL: (
            "இருப்பிட கோரிக்கை நேரம் முடிந்தது. "
            "உங்கள் இணைய இணைப்பைச் சரிபார்த்து மீண்டும் முயற்சிக்கவும்."
        ),
    },
    "location.unsupported": {
        Language.ENGLISH: (
            "Location services are not available on this device. "
            "Please enter your area manually."
        ),
        Language.TAMIL: (
            "இந்த சாதனத்தில் இருப்பிட சேவை கிடைக்கவில்லை. "
            "உங்கள் பகுதியை கைமுறையாக உள்ளிடவும்."
        ),
    },
    "location.required": {
        Language.ENGLISH: (
            "Unable to get your location. "
            "Please enter your area manually or try again."
        ),
        Language.TAMIL: (
            "உங்கள் இருப்பிடத்தைப் பெற முடியவில்லை. "
            "உங்கள் பகுதியை கைமுறையாக உள்ளிடுக அல்லது மீண்டும் முயற்சிக்கவும்."
        ),
    },
    "search.failed": {
        Language.ENGLISH: "We could not search for clinics right now. Please try again.",
        Language.TAMIL: (
            "இப்போது கிளினிக்குகளைத் தேட முடியவில்லை. "
            "தயவுசெய்து மீண்டும் முயற்சிக்கவும்."
        ),
    },
    "search.no_results": {
        Language.ENGLISH: (
            "No matching clinics were found near you. "
            "Try a larger search radius or fewer filters."
        ),
        Language.TAMIL: (
            "உங்கள் அருகில் பொருந்தும் கிளினிக்குகள் எதுவும் கிடைக்கவில்லை. "
            "தேடல் பரப்பை அதிகரித்து அல்லது வடிகட்டிகளைக் குறைத்து முயற்சிக்கவும்."
        ),
    },
    "triage.emergency": {
        Language.ENGLISH: (
            "🚨 This appears to be an emergency! Please call {dial_code} or "
            "visit the nearest emergency room immediately."
        ),
        Language.TAMIL: (
            "🚨 இது அவசர நிலைமை போல் தெரிகிறது! உடனடியாக {dial_code} ஐ அழைக்கவும் "
            "அல்லது அருகிலுள்ள அவசர சிகிச்சை பிரிவுக்குச் செல்லவும்."
        ),
    },
    "triage.specialist": {
        Language.ENGLISH: "Based on your symptoms, consider visiting a {names} specialist.",
        Language.TAMIL: "உங்கள் அறிகுறிகளின் அடிப்படையில், {names} நிபுணரை சந்திக்க பரிசீலிக்கவும்.",
    },
    "triage.prompt_care": {
        Language.ENGLISH: (
            "⚠️ This requires prompt medical attention. "
            "Please seek care as soon as possible."
        ),
        Language.TAMIL: (
            "⚠️ இதற்கு உடனடி மருத்துவ கவனம் தேவை. "
            "முடிந்தவரை விரைவில் சிகிச்சை பெறவும்."
        ),
    },
    "triage.general_practitioner": {
        Language.ENGLISH: (
            "We could not match your symptoms to a specialty. "
            "Please consult a general practitioner."
        ),
        Language.TAMIL: (
            "உங்கள் அறிகுறிகளை ஒரு குறிப்பிட்ட துறையுடன் பொருத்த முடியவில்லை. "
            "தயவுசெய்து ஒரு பொது மருத்துவரை அணுகவும்."
        ),
    },
    "request.coordinate_pair": {
        Language.ENGLISH: "Provide both 'lat' and 'lng', or neither.",
        Language.TAMIL: "'lat' மற்றும் 'lng' இரண்டையும் வழங்கவும், அல்லது எதையும் வழங்க வேண்டாம்.",
    },
    "request.unknown_specialization": {
        Language.ENGLISH: "Unknown specialization: {specialization}",
        Language.TAMIL: "அறியப்படாத மருத்துவத் துறை: {specialization}",
    },
    "error.internal": {
        Language.ENGLISH: "Something went wrong. Please try again.",
        Language.TAMIL: "ஏதோ தவறு நடந்தது. தயவுசெய்து மீண்டும் முயற்சிக்கவும்.",
    },
}


def resolve_language(value: str | Language | None, default: str = "en") -> Language:
    """Map a language tag (``ta``, ``ta-IN``, ``Tamil``...) onto a supported language.

    Unknown or missing tags fall back to *default*.
    """
    if isinstance(value, Language):
        return value
    if value:
        first = value.split(",")[0].split(";")[0]
        primary = first.strip().lower().replace("_", "-").split("-")[0]
        if primary in _ALIASES:
            return _ALIASES[primary]
    return _ALIASES.get(default.lower(), Language.ENGLISH)


def message(key: str, language: str | Language | None = None, **params: str) -> str:
    """Return the localized text for *key*, formatted with *params*."""
    lang = resolve_language(language)
    template = _MESSAGES[key][lang]
    return template.format(**params) if params else template
