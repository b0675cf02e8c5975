from compliance_scanner.app.checks.ai_disclosure import AiDisclosureCheck
from compliance_scanner.app.checks.ai_literacy import AiLiteracyCheck
from compliance_scanner.app.checks.compliance_metadata import ComplianceMetadataCheck
from compliance_scanner.app.checks.content_marking import ContentMarkingCheck
from compliance_scanner.app.checks.documentation import DocumentationCheck
from compliance_scanner.app.checks.gpai_transparency import GpaiTransparencyCheck
from compliance_scanner.app.checks.interaction_logging import InteractionLoggingCheck

# Registry order is the L1 emission order.
DEFAULT_CHECKS = [
    AiDisclosureCheck,
    ContentMarkingCheck,
    InteractionLoggingCheck,
    AiLiteracyCheck,
    GpaiTransparencyCheck,
    ComplianceMetadataCheck,
    DocumentationCheck,
]


def default_check_units():
    return [check() for check in DEFAULT_CHECKS]
