"""
Domain expertise tables for the discovery interview.

Three domains are known (fintech, healthcare, general). Unknown domains
resolve to "general" everywhere. Each domain carries:
  - an expertise profile injected into question-generation prompts
  - the expected number of questions per stage (drives progress accounting)
  - a small deterministic assumption set used when generation fails
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from ..core.types import Stage

GENERAL_DOMAIN = "general"


@dataclass(frozen=True)
class DomainProfile:
    """Domain knowledge the question generator leans on."""
    domain: str
    expertise_areas: List[str]
    terminology: Dict[str, List[str]]
    business_drivers: List[str]
    technical_concepts: List[str]
    common_challenges: List[str]
    best_practices: List[str]
    industry_standards: List[str]
    regulatory_requirements: List[str] = field(default_factory=list)


DOMAIN_PROFILES: Dict[str, DomainProfile] = {
    "fintech": DomainProfile(
        domain="fintech",
        expertise_areas=[
            "Regulatory Compliance", "Payment Processing", "Risk Management",
            "Core Banking Systems", "API Integration", "Fraud Detection",
            "Customer Onboarding", "Regulatory Reporting", "Open Banking",
        ],
        terminology={
            "regulatory": ["PCI DSS", "SOC2", "GDPR", "Basel III", "MiFID II"],
            "payments": ["ACH", "SWIFT", "real-time payments", "settlement"],
            "risk": ["credit scoring", "fraud detection", "AML", "KYC"],
            "technology": ["core banking", "payment processors", "APIs", "microservices"],
        },
        business_drivers=[
            "Regulatory compliance automation", "Customer experience improvement",
            "Operational efficiency", "Risk reduction", "Cost reduction",
        ],
        technical_concepts=[
            "Real-time payment processing", "API-first design", "Event-driven systems",
            "Encryption and tokenization", "Machine learning for fraud detection",
        ],
        common_challenges=[
            "Legacy system integration complexity", "Regulatory compliance burden",
            "Fraud prevention vs user experience", "Multi-jurisdiction compliance",
            "Scalability under transaction volume",
        ],
        best_practices=[
            "API-first architecture for flexibility", "Microservices for compliance isolation",
            "Real-time monitoring and alerting", "Automated compliance reporting",
        ],
        industry_standards=["ISO 27001", "PCI DSS", "SOC2 Type II", "ISO 20022", "Open Banking standards"],
        regulatory_requirements=[
            "Know Your Customer (KYC)", "Anti-Money Laundering (AML)",
            "Bank Secrecy Act (BSA)", "General Data Protection Regulation (GDPR)",
        ],
    ),
    "healthcare": DomainProfile(
        domain="healthcare",
        expertise_areas=[
            "HIPAA Compliance", "EHR Integration", "Clinical Workflows", "Patient Privacy",
            "Interoperability", "Care Coordination", "Telemedicine",
        ],
        terminology={
            "compliance": ["HIPAA", "HITECH", "PHI", "BAA", "covered entity"],
            "interoperability": ["HL7 FHIR", "CDA", "DICOM", "IHE profiles"],
            "clinical": ["EHR", "EMR", "CPOE", "clinical decision support"],
            "standards": ["ICD-10", "CPT codes", "SNOMED CT", "LOINC"],
        },
        business_drivers=[
            "Patient care quality improvement", "Provider workflow efficiency",
            "Regulatory compliance", "Patient engagement", "Care coordination",
        ],
        technical_concepts=[
            "HL7 FHIR API integration", "EHR data extraction", "Patient matching algorithms",
            "Secure messaging", "Telehealth platforms",
        ],
        common_challenges=[
            "EHR vendor integration complexity", "HIPAA compliance requirements",
            "Clinical workflow disruption", "Provider adoption resistance",
        ],
        best_practices=[
            "Privacy by design principles", "Minimal necessary data collection",
            "Clinical workflow integration", "Provider-centric user experience",
        ],
        industry_standards=["HL7 FHIR R4", "DICOM", "SMART on FHIR", "CDA R2"],
        regulatory_requirements=[
            "HIPAA Privacy Rule", "HIPAA Security Rule", "HITECH Act",
            "FDA medical device regulations",
        ],
    ),
    GENERAL_DOMAIN: DomainProfile(
        domain=GENERAL_DOMAIN,
        expertise_areas=[
            "Product Strategy", "User Experience", "Market Analysis",
            "Technology Architecture", "Business Operations", "Growth Strategy",
        ],
        terminology={
            "business": ["KPIs", "ROI", "product-market fit", "go-to-market"],
            "technology": ["APIs", "cloud architecture", "scalability", "security"],
            "product": ["user stories", "MVP", "feature prioritization", "roadmap"],
        },
        business_drivers=[
            "Revenue growth", "Cost reduction", "User experience improvement",
            "Time to market", "Customer retention",
        ],
        technical_concepts=[
            "Cloud-native architecture", "API-first design", "Mobile-first development",
            "Data analytics and reporting", "Integration platforms",
        ],
        common_challenges=[
            "User adoption and change management", "Technical scalability requirements",
            "Resource constraints and prioritization", "Integration with existing systems",
        ],
        best_practices=[
            "User-centered design methodology", "Agile development practices",
            "Security-first development approach", "Iterative user feedback incorporation",
        ],
        industry_standards=["ISO 27001 (Security)", "WCAG accessibility guidelines", "OAuth 2.0 and OpenID Connect"],
        regulatory_requirements=[
            "General Data Protection Regulation (GDPR)",
            "California Consumer Privacy Act (CCPA)",
        ],
    ),
}


# Expected questions per content stage. Regulated domains spend longer on specs.
DEFAULT_STAGE_QUESTION_COUNTS: Dict[Stage, int] = {
    Stage.IDEA_CLARITY: 8,
    Stage.USER_WORKFLOW: 12,
    Stage.TECHNICAL_SPECS: 15,
    Stage.WIREFRAMES: 6,
}

STAGE_QUESTION_COUNTS: Dict[str, Dict[Stage, int]] = {
    "fintech": {**DEFAULT_STAGE_QUESTION_COUNTS, Stage.TECHNICAL_SPECS: 18},
    "healthcare": {**DEFAULT_STAGE_QUESTION_COUNTS, Stage.TECHNICAL_SPECS: 18},
    GENERAL_DOMAIN: DEFAULT_STAGE_QUESTION_COUNTS,
}


# =============================================================================
# FALLBACK ASSUMPTIONS: used when the generation call fails
# =============================================================================

FALLBACK_ASSUMPTIONS: Dict[str, List[Dict]] = {
    "fintech": [
        {
            "category": "technical_requirements",
            "title": "Cloud-based Architecture",
            "description": "The platform will be built on cloud infrastructure for scalability and compliance",
            "confidence": 0.7,
            "reasoning": "Most fintech solutions require cloud deployment for regulatory compliance",
            "impact": "high",
            "dependencies": [],
            "validation_questions": ["Do you have cloud provider preferences?"],
            "alternatives": ["On-premise deployment"],
        },
        {
            "category": "user_target",
            "title": "Financial Services Professionals",
            "description": "Primary users will be financial services professionals and compliance officers",
            "confidence": 0.8,
            "reasoning": "Fintech solutions typically target financial industry professionals",
            "impact": "high",
            "dependencies": [],
            "validation_questions": ["Who are your target users?"],
            "alternatives": ["End consumers", "IT administrators"],
        },
    ],
    "healthcare": [
        {
            "category": "technical_requirements",
            "title": "HIPAA Compliance",
            "description": "The system must be HIPAA compliant for handling patient data",
            "confidence": 0.9,
            "reasoning": "Healthcare applications must comply with HIPAA regulations",
            "impact": "high",
            "dependencies": [],
            "validation_questions": ["What patient data will you handle?"],
            "alternatives": ["Non-patient facing system"],
        },
    ],
    GENERAL_DOMAIN: [
        {
            "category": "user_target",
            "title": "Business Users",
            "description": "The application will primarily serve business users",
            "confidence": 0.6,
            "reasoning": "Most business applications target professional users",
            "impact": "medium",
            "dependencies": [],
            "validation_questions": ["Who will use this application?"],
            "alternatives": ["Consumer users", "Technical users"],
        },
    ],
}

FALLBACK_MISSING_INFO = [
    "Specific user requirements",
    "Technical constraints",
    "Business model details",
]

FALLBACK_NEXT_STEPS = [
    "Validate these assumptions with stakeholders",
    "Gather more specific requirements",
    "Define technical architecture",
]


def resolve_domain(domain: str) -> str:
    """Normalize a domain tag; unknown tags map to 'general'."""
    key = (domain or "").strip().lower()
    return key if key in DOMAIN_PROFILES else GENERAL_DOMAIN


def get_domain_profile(domain: str) -> DomainProfile:
    return DOMAIN_PROFILES[resolve_domain(domain)]


def get_stage_question_counts(domain: str) -> Dict[Stage, int]:
    return STAGE_QUESTION_COUNTS.get(resolve_domain(domain), DEFAULT_STAGE_QUESTION_COUNTS)
