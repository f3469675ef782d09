"""
Preflight validation of a configuration version before activation.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..cache.name_resolver import NameResolver
from ..client.base_client import ControlPlaneClient
from ..core.enums import ActivationState, CheckStatus, ErrorSeverity, Network, WarningSeverity
from ..core.models import PreflightCheck, ValidationError, ValidationResult, ValidationWarning


HOSTNAME_CHECK = 'Hostname Configuration'
CERTIFICATE_CHECK = 'HTTPS Certificate Status'
ORIGIN_CHECK = 'Origin Connectivity'

CONCURRENT_ACTIVATION = 'CONCURRENT_ACTIVATION'
VERSION_ALREADY_ACTIVE = 'VERSION_ALREADY_ACTIVE'
NO_HOSTNAMES = 'NO_HOSTNAMES'
PREFLIGHT_CHECK_NOT_PASSED = 'PREFLIGHT_CHECK_NOT_PASSED'

_SYNTHETIC_ERROR_TYPES = {CONCURRENT_ACTIVATION, NO_HOSTNAMES, PREFLIGHT_CHECK_NOT_PASSED}

ERROR_RESOLUTIONS = {
    'missing_required_behavior': 'Add the required behavior to your rule tree',
    'invalid_criteria': 'Update the criteria to use valid values',
    'deprecated_behavior': 'Replace with the recommended alternative behavior',
    'origin_not_reachable': 'Verify origin server is accessible and configured correctly',
    'certificate_not_ready': 'Wait for certificate validation to complete',
}
DEFAULT_RESOLUTION = 'Review the error details and update configuration'


@dataclass
class _Findings:
    """Partial result contributed by one check"""
    errors: List[ValidationError] = field(default_factory=list)
    warnings: List[ValidationWarning] = field(default_factory=list)
    checks: List[PreflightCheck] = field(default_factory=list)


def is_https_hostname(hostname: Dict[str, Any]) -> bool:
    """HTTPS-bound hostnames point at an edgekey target or carry a cert type"""
    cname_to = hostname.get('cnameTo') or ''
    return 'edgekey' in cname_to or bool(hostname.get('certProvisioningType'))


def certificate_deployed(hostname: Dict[str, Any], network: Network) -> bool:
    statuses = (hostname.get('certStatus') or {}).get(network.value.lower()) or []
    return bool(statuses) and statuses[0].get('status') == 'DEPLOYED'


def find_origin_hostname(rules: Dict[str, Any]) -> Optional[str]:
    """Depth-first search of the rule tree for the first origin behavior"""
    for behavior in rules.get('behaviors') or []:
        if behavior.get('name') == 'origin' and (behavior.get('options') or {}).get('hostname'):
            return behavior['options']['hostname']
    for child in rules.get('children') or []:
        origin = find_origin_hostname(child)
        if origin:
            return origin
    return None


class PreflightValidator:
    """
    Runs the fixed battery of independent checks against a version.

    Checks are mutually independent and run concurrently; their findings are
    merged in battery order so results are deterministic.
    """

    def __init__(
        self,
        client: ControlPlaneClient,
        name_resolver: Optional[NameResolver] = None
    ):
        self.client = client
        self.name_resolver = name_resolver
        self.logger = logging.getLogger(f"{__name__}.PreflightValidator")

    async def validate(
        self,
        resource_id: str,
        network: Network,
        version: Optional[int] = None,
        require_all_preflight_checks: bool = False
    ) -> ValidationResult:
        """
        Validate a version before requesting deployment.

        Args:
            resource_id: Configuration resource id
            network: Target network
            version: Version to validate (defaults to the latest version)
            require_all_preflight_checks: Treat any non-passing check as an error

        Returns:
            ValidationResult; ``valid`` is False iff it holds errors
        """
        resource = await self.client.get_resource(resource_id)
        version = version or resource.get('latestVersion') or 1

        self.logger.info(f"Validating {resource_id} v{version} for {network.value}")

        hostnames = await self.client.get_hostnames(resource_id, version)

        findings = await asyncio.gather(
            self._check_rules(resource_id, version),
            self._check_hostnames(hostnames),
            self._check_certificates(hostnames, network),
            self._check_concurrent_activations(resource_id, network),
            self._check_version_already_active(resource, version, network),
            self._check_origin(resource_id, version),
        )

        result = ValidationResult(
            resource_id=resource_id,
            version=version,
            network=network,
            resource_name=resource.get('propertyName'),
        )
        for finding in findings:
            result.errors.extend(finding.errors)
            result.warnings.extend(finding.warnings)
            result.preflight_checks.extend(finding.checks)

        if require_all_preflight_checks:
            for check in result.preflight_checks:
                if check.status != CheckStatus.PASSED and check.name != HOSTNAME_CHECK:
                    result.errors.append(ValidationError(
                        severity=ErrorSeverity.ERROR,
                        type=PREFLIGHT_CHECK_NOT_PASSED,
                        detail=f"Preflight check '{check.name}' did not pass: {check.message}",
                        resolution=check.details,
                    ))

        if not result.valid:
            result.suggestions = generate_suggestions(result)

        if self.name_resolver:
            result.context = await self._resolve_context(resource)

        self.logger.info(
            f"Validation of {resource_id} v{version} for {network.value}: "
            f"{'PASSED' if result.valid else 'FAILED'} "
            f"({len(result.errors)} error(s), {len(result.warnings)} warning(s))"
        )
        return result

    async def _check_rules(self, resource_id: str, version: int) -> _Findings:
        findings = _Findings()
        report = await self.client.validate_version(resource_id, version)

        for error in report.get('errors') or []:
            error_type = error.get('type', 'unknown')
            findings.errors.append(ValidationError(
                severity=ErrorSeverity.CRITICAL if error_type == 'error' else ErrorSeverity.ERROR,
                type=error_type,
                detail=error.get('detail', ''),
                location=error.get('errorLocation'),
                resolution=ERROR_RESOLUTIONS.get(error_type, DEFAULT_RESOLUTION),
            ))

        for warning in report.get('warnings') or []:
            findings.warnings.append(ValidationWarning(
                severity=WarningSeverity.WARNING,
                type=warning.get('type', 'unknown'),
                detail=warning.get('detail', ''),
                location=warning.get('errorLocation'),
            ))
        return findings

    async def _check_hostnames(self, hostnames: List[Dict[str, Any]]) -> _Findings:
        findings = _Findings()
        if hostnames:
            findings.checks.append(PreflightCheck(
                name=HOSTNAME_CHECK,
                status=CheckStatus.PASSED,
                message=f"{len(hostnames)} hostname(s) configured",
            ))
            return findings

        findings.checks.append(PreflightCheck(
            name=HOSTNAME_CHECK,
            status=CheckStatus.FAILED,
            message='No hostnames configured',
            details='Add at least one hostname before activation',
        ))
        findings.errors.append(ValidationError(
            severity=ErrorSeverity.ERROR,
            type=NO_HOSTNAMES,
            detail='Version has no hostnames; activation cannot serve traffic',
            resolution='Add at least one hostname before activation',
        ))
        return findings

    async def _check_certificates(self, hostnames: List[Dict[str, Any]], network: Network) -> _Findings:
        findings = _Findings()
        https_hostnames = [h for h in hostnames if is_https_hostname(h)]

        if not https_hostnames:
            findings.checks.append(PreflightCheck(
                name=CERTIFICATE_CHECK,
                status=CheckStatus.PASSED,
                message='No HTTPS hostnames configured',
            ))
            return findings

        missing = [h for h in https_hostnames if not certificate_deployed(h, network)]
        if missing:
            findings.checks.append(PreflightCheck(
                name=CERTIFICATE_CHECK,
                status=CheckStatus.WARNING,
                message=f"{len(missing)} hostname(s) missing valid certificates",
                details=f"Hostnames without certificates: {', '.join(h.get('cnameFrom', '?') for h in missing)}",
            ))
        else:
            findings.checks.append(PreflightCheck(
                name=CERTIFICATE_CHECK,
                status=CheckStatus.PASSED,
                message=f"All {len(https_hostnames)} HTTPS hostname(s) have valid certificates",
            ))
        return findings

    async def _check_concurrent_activations(self, resource_id: str, network: Network) -> _Findings:
        findings = _Findings()
        activations = await self.client.list_activations(resource_id)
        pending = [
            a for a in activations
            if a.state == ActivationState.PENDING and a.network == network
        ]
        if pending:
            findings.errors.append(ValidationError(
                severity=ErrorSeverity.CRITICAL,
                type=CONCURRENT_ACTIVATION,
                detail=(
                    f"Another activation is already in progress for {network.value} "
                    f"({', '.join(a.activation_id for a in pending)})"
                ),
                resolution='Wait for the current activation to complete or cancel it',
            ))
        return findings

    async def _check_version_already_active(
        self,
        resource: Dict[str, Any],
        version: int,
        network: Network
    ) -> _Findings:
        findings = _Findings()
        key = 'productionVersion' if network == Network.PRODUCTION else 'stagingVersion'
        current = resource.get(key)
        if current and int(current) == int(version):
            findings.warnings.append(ValidationWarning(
                severity=WarningSeverity.INFO,
                type=VERSION_ALREADY_ACTIVE,
                detail=f"Version {version} is already active in {network.value}",
            ))
        return findings

    async def _check_origin(self, resource_id: str, version: int) -> _Findings:
        """Advisory only: reachability cannot be verified from the client"""
        findings = _Findings()
        try:
            rules = await self.client.get_rules(resource_id, version)
        except Exception as e:
            self.logger.warning(f"Could not load rules for {resource_id} v{version}: {e}")
            findings.checks.append(PreflightCheck(
                name=ORIGIN_CHECK,
                status=CheckStatus.WARNING,
                message='Could not verify origin configuration',
                details='Manual verification recommended',
            ))
            return findings

        origin = find_origin_hostname(rules)
        if origin:
            findings.checks.append(PreflightCheck(
                name=ORIGIN_CHECK,
                status=CheckStatus.PASSED,
                message=f"Origin configured: {origin}",
                details='Note: Actual connectivity test not performed',
            ))
        else:
            findings.checks.append(PreflightCheck(
                name=ORIGIN_CHECK,
                status=CheckStatus.WARNING,
                message='No origin hostname found in configuration',
                details='Verify origin behavior is properly configured',
            ))
        return findings

    async def _resolve_context(self, resource: Dict[str, Any]) -> Dict[str, str]:
        context = {}
        if resource.get('contractId'):
            context['contract'] = await self.name_resolver.contract_name(resource['contractId'])
        if resource.get('groupId'):
            context['group'] = await self.name_resolver.group_name(resource['groupId'])
        if resource.get('productId'):
            context['product'] = await self.name_resolver.product_name(resource['productId'])
        return context


def generate_suggestions(result: ValidationResult) -> List[str]:
    """Advisory remediation text keyed on which check categories failed"""
    suggestions = []

    has_rule_errors = any(e.type not in _SYNTHETIC_ERROR_TYPES for e in result.errors)
    has_hostname_errors = any(
        c.name == HOSTNAME_CHECK and c.status == CheckStatus.FAILED for c in result.preflight_checks
    )
    has_cert_errors = any(
        c.name == CERTIFICATE_CHECK and c.status != CheckStatus.PASSED for c in result.preflight_checks
    )
    has_origin_warning = any(
        c.name == ORIGIN_CHECK and c.status != CheckStatus.PASSED for c in result.preflight_checks
    )

    if has_rule_errors:
        suggestions.append('Fix rule validation errors by updating the rule tree')
        suggestions.append('Review the current rule tree of this version before re-validating')

    if has_hostname_errors:
        suggestions.append('Add at least one hostname to the configuration')

    if has_cert_errors:
        suggestions.append('Ensure all HTTPS hostnames have valid certificates')
        suggestions.append('Request a new certificate enrollment for hostnames that lack one')

    if has_origin_warning:
        suggestions.append('Verify the origin behavior and hostname are configured')

    if any(e.type == CONCURRENT_ACTIVATION for e in result.errors):
        suggestions.append('Wait for current activation to complete')
        suggestions.append('Or cancel the pending activation if needed')

    return suggestions
