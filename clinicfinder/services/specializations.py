"""Static medical specialization reference data.

Declaration order is significant: the symptom classifier scans in this
order, so matches and recommendation text are reproducible.
"""

from __future__ import annotations

from dataclasses import dataclass

from clinicfinder.messages import Language
from clinicfinder.models import UrgencyLevel


@dataclass(frozen=True)
class MedicalSpecialization:
    id: str
    name: str
    tamil_name: str
    urgency_level: UrgencyLevel
    keywords: tuple[str, ...]
    tamil_keywords: tuple[str, ...]
    description: str

    def display_name(self, language: Language) -> str:
        return self.tamil_name if language is Language.TAMIL else self.name

    def keywords_for(self, language: Language) -> tuple[str, ...]:
        return self.tamil_keywords if language is Language.TAMIL else self.keywords


SPECIALIZATIONS: tuple[MedicalSpecialization, ...] = (
    MedicalSpecialization(
        id="general_medicine",
        name="General Medicine",
        tamil_name="பொது மருத்துவம்",
        urgency_level=UrgencyLevel.LOW,
        keywords=("fever", "headache", "body pain", "cold", "flu", "general health", "check up"),
        tamil_keywords=("காய்ச்சல்", "தலைவலி", "உடல் வலி", "சளி", "பொது மருத்துவம்", "பரிசோதனை"),
        description="General health issues, fever, infections, routine checkups",
    ),
    MedicalSpecialization(
        id="cardiology",
        name="Cardiology",
        tamil_name="இதய மருத்துவம்",
        urgency_level=UrgencyLevel.HIGH,
        keywords=("heart", "chest pain", "cardiac", "heart attack", "palpitation", "blood pressure"),
        tamil_keywords=("இதயம்", "மார்பு வலி", "இதய நோய்", "இரத்த அழுத்தம்", "இதய துடிப்பு"),
        description="Heart conditions, chest pain, cardiac emergencies",
    ),
    MedicalSpecialization(
        id="neurology",
        name="Neurology",
        tamil_name="நரம்பு மருத்துவம்",
        urgency_level=UrgencyLevel.HIGH,
        keywords=("brain", "nerve", "headache", "migraine", "seizure", "stroke", "paralysis"),
        tamil_keywords=("மூளை", "நரம்பு", "தலைவலி", "வலிப்பு", "பக்கவாதம்", "தலைவலி நோய்"),
        description="Brain, nerve, and neurological disorders",
    ),
    MedicalSpecialization(
        id="orthopedics",
        name="Orthopedics",
        tamil_name="எலும்பு மருத்துவம்",
        urgency_level=UrgencyLevel.MEDIUM,
        keywords=("bone", "joint", "fracture", "arthritis", "back pain", "knee pain", "shoulder"),
        tamil_keywords=("எலும்பு", "மூட்டு", "எலும்பு முறிவு", "முதுகு வலி", "முழங்கால் வலி", "தோள்பட்டை"),
        description="Bone, joint, and musculoskeletal problems",
    ),
    MedicalSpecialization(
        id="pediatrics",
        name="Pediatrics",
        tamil_name="குழந்தைகள் மருத்துவம்",
        urgency_level=UrgencyLevel.MEDIUM,
        keywords=("child", "baby", "pediatric", "vaccination", "child fever", "growth"),
        tamil_keywords=("குழந்தை", "சிசு", "குழந்தை மருத்துவம்", "தடுப்பூசி", "குழந்தை வளர்ச்சி"),
        description="Medical care for infants, children, and adolescents",
    ),
    MedicalSpecialization(
        id="gynecology",
        name="Gynecology",
        tamil_name="பெண்கள் மருத்துவம்",
        urgency_level=UrgencyLevel.MEDIUM,
        keywords=("women", "pregnancy", "gynecology", "obstetrics", "menstrual", "fertility"),
        tamil_keywords=("பெண்கள்", "கர்ப்பம்", "மகப்பேறு", "மாதவிடாய்", "கருவுறுதல்"),
        description="Women's health, pregnancy, and reproductive care",
    ),
    MedicalSpecialization(
        id="dermatology",
        name="Dermatology",
        tamil_name="தோல் மருத்துவம்",
        urgency_level=UrgencyLevel.LOW,
        keywords=("skin", "rash", "allergy", "dermatology", "acne", "eczema"),
        tamil_keywords=("தோல்", "சொறி", "ஒவ்வாமை", "தோல் நோய்", "முகப்பருக்கள்"),
        description="Skin conditions, allergies, and dermatological issues",
    ),
    MedicalSpecialization(
        id="gastroenterology",
        name="Gastroenterology",
        tamil_name="இரைப்பை குடல் மருத்துவம்",
        urgency_level=UrgencyLevel.MEDIUM,
        keywords=("stomach", "digestive", "gastro", "abdominal pain", "diarrhea", "constipation"),
        tamil_keywords=("வயிறு", "செரிமானம்", "வயிற்று வலி", "வயிற்றுப்போக்கு", "மலச்சிக்கல்"),
        description="Digestive system and gastrointestinal disorders",
    ),
    MedicalSpecialization(
        id="emergency",
        name="Emergency",
        tamil_name="அவசர சிகிச்சை",
        urgency_level=UrgencyLevel.EMERGENCY,
        keywords=("emergency", "urgent", "accident", "trauma", "critical", "severe pain"),
        tamil_keywords=("அவசரம்", "அவசர சிகிச்சை", "விபத்து", "கடுமையான வலி", "முக்கியமான"),
        description="Emergency medical care, accidents, trauma",
    ),
    MedicalSpecialization(
        id="oncology",
        name="Oncology",
        tamil_name="புற்றுநோய் மருத்துவம்",
        urgency_level=UrgencyLevel.HIGH,
        keywords=("cancer", "tumor", "oncology", "chemotherapy", "radiation"),
        tamil_keywords=("புற்றுநோய்", "கட்டி", "புற்றுநோய் சிகிச்சை"),
        description="Cancer treatment and oncological care",
    ),
)

_BY_ID = {spec.id: spec for spec in SPECIALIZATIONS}


def get_specialization(spec_id: str) -> MedicalSpecialization | None:
    return _BY_ID.get(spec_id)


def specialization_ids() -> tuple[str, ...]:
    return tuple(_BY_ID)
