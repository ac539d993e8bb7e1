import logging
import re
from dataclasses import dataclass
from typing import Optional

import dns.asyncresolver
import dns.exception
import dns.resolver

from app.api.core.config import settings
from app.api.utils.zerobounce import DeliverabilityClient

logger = logging.getLogger("app")

EMAIL_REGEX = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)

DISPOSABLE_EMAIL_DOMAINS = {
    "10minutemail.com",
    "guerrillamail.com",
    "mailinator.com",
    "tempmail.com",
    "throwaway.email",
    "temp-mail.org",
    "getnada.com",
    "maildrop.cc",
    "yopmail.com",
    "sharklasers.com",
    "trashmail.com",
    "fakeinbox.com",
    "dispostable.com",
    "burnermail.io",
    "getairmail.com",
    "emailondeck.com",
    "mohmal.com",
    "guerrillamailblock.com",
    "spam4.me",
    "mintemail.com",
    "mytemp.email",
    "temp-mail.io",
    "tmpmail.net",
    "harakirimail.com",
    "jetable.org",
    "throwawaymail.com",
    "spamgourmet.com",
    "mailnesia.com",
    "33mail.com",
    "mailcatch.com",
    "getonemail.com",
    "fakemail.net",
}

COMMON_DOMAIN_TYPOS = {
    "gmial.com": "gmail.com",
    "gmai.com": "gmail.com",
    "gnail.com": "gmail.com",
    "yahooo.com": "yahoo.com",
    "yaho.com": "yahoo.com",
    "outlok.com": "outlook.com",
    "hotmial.com": "hotmail.com",
}

INVALID_FORMAT_REASON = "Invalid email format. Please enter a valid email address."
DISPOSABLE_REASON = (
    "Temporary or disposable email addresses are not allowed. "
    "Please use a permanent email address."
)
NO_MX_REASON = "This email domain cannot receive emails. Please check your email address."
PROVIDER_ALLOW_REASON = "Email validation service temporarily unavailable, allowing email"
PROVIDER_REJECT_REASON = "Email validation service unavailable. Please try again later."


@dataclass
class EmailValidationResult:
    """Verdict of the email validator.

    Attributes:
        valid: Whether the address may join the waitlist.
        reason: Human-readable reason, always set on rejection.
        status: Deliverability provider status, when the provider was asked.
        suggestion: Corrected address when the domain looked like a typo.
    """

    valid: bool
    reason: Optional[str] = None
    status: Optional[str] = None
    suggestion: Optional[str] = None


def normalize_email(email: str) -> str:
    return email.strip().lower()


def validate_email_format(email: str) -> bool:
    """Structural check approximating RFC 5322.

    Args:
        email: Normalised email address.

    Returns:
        True when the address is well formed.
    """
    if not email or not isinstance(email, str):
        return False

    if len(email) > 254:
        return False

    if not EMAIL_REGEX.match(email):
        return False

    local_part, domain = email.split("@", 1)

    if len(local_part) > 64:
        return False

    if len(domain) > 253:
        return False

    if ".." in email:
        return False

    if "." not in domain:
        return False

    tld = domain.rsplit(".", 1)[-1]
    if len(tld) < 2:
        return False

    return True


def is_disposable_email(email: str) -> bool:
    domain = email.rsplit("@", 1)[-1].lower() if "@" in email else ""
    return domain in DISPOSABLE_EMAIL_DOMAINS


def suggest_typo_correction(email: str) -> Optional[str]:
    """Return the corrected address when the domain is a known misspelling."""
    local_part, _, domain = email.rpartition("@")
    corrected = COMMON_DOMAIN_TYPOS.get(domain)
    if corrected is None:
        return None
    return f"{local_part}@{corrected}"


class EmailValidator:
    """Decides whether an address may join the waitlist.

    Checks run in order and stop at the first failure:
    format, disposable domain, domain typo, MX records, deliverability provider.
    The last two touch the network and only run when ``check_deliverability``
    is set.
    """

    def __init__(
        self,
        deliverability_client: Optional[DeliverabilityClient] = None,
        check_mx: Optional[bool] = None,
        on_provider_error: Optional[str] = None,
        dns_timeout: Optional[float] = None,
    ):
        """Create a new validator.

        Args:
            deliverability_client: Provider client, built from settings when omitted.
            check_mx: Whether MX lookups are enabled. Defaults to EMAIL_MX_CHECK_ENABLED.
            on_provider_error: "allow" or "reject" when the provider cannot answer.
            dns_timeout: DNS query lifetime in seconds.
        """
        self.deliverability_client = deliverability_client or DeliverabilityClient()
        self.check_mx = settings.EMAIL_MX_CHECK_ENABLED if check_mx is None else check_mx
        policy = on_provider_error or settings.DELIVERABILITY_ON_PROVIDER_ERROR
        if policy not in ("allow", "reject"):
            raise ValueError(f"Unknown provider error policy: {policy}")
        self.on_provider_error = policy
        self.dns_timeout = settings.EMAIL_DNS_TIMEOUT if dns_timeout is None else dns_timeout
        self._resolver: Optional[dns.asyncresolver.Resolver] = None

    async def validate(self, email: str, check_deliverability: bool = True) -> EmailValidationResult:
        """Validate an email address.

        Args:
            email: Raw address as submitted.
            check_deliverability: Run the network checks (MX lookup and provider).

        Returns:
            EmailValidationResult describing the verdict.
        """
        normalized = normalize_email(email or "")

        if not validate_email_format(normalized):
            return EmailValidationResult(False, INVALID_FORMAT_REASON)

        if is_disposable_email(normalized):
            return EmailValidationResult(False, DISPOSABLE_REASON)

        suggestion = suggest_typo_correction(normalized)
        if suggestion:
            return EmailValidationResult(False, f"Did you mean {suggestion}?", suggestion=suggestion)

        if not check_deliverability:
            return EmailValidationResult(True)

        if self.check_mx:
            domain = normalized.rsplit("@", 1)[1]
            has_mx = await self.has_mx_records(domain)
            if not has_mx:
                return EmailValidationResult(False, NO_MX_REASON)

        if self.deliverability_client.enabled:
            result = await self.deliverability_client.validate(normalized)
            if result.provider_error:
                if self.on_provider_error == "reject":
                    return EmailValidationResult(False, PROVIDER_REJECT_REASON)
                return EmailValidationResult(True, PROVIDER_ALLOW_REASON)
            return EmailValidationResult(result.valid, result.reason, status=result.status)

        return EmailValidationResult(True)

    def _get_resolver(self) -> Optional[dns.asyncresolver.Resolver]:
        if self._resolver is None:
            try:
                resolver = dns.asyncresolver.Resolver()
            except dns.resolver.NoResolverConfiguration:
                logger.warning("DNS resolver not configured, skipping MX record check")
                return None
            resolver.timeout = self.dns_timeout
            resolver.lifetime = self.dns_timeout
            self._resolver = resolver
        return self._resolver

    async def has_mx_records(self, domain: str) -> bool:
        """Check that the domain publishes at least one MX record.

        Lookups that cannot be performed at all (no resolver configuration,
        no reachable nameserver, timeout) allow the address.

        Args:
            domain: Domain part of the address.

        Returns:
            True when MX records exist or the lookup could not be performed.
        """
        resolver = self._get_resolver()
        if resolver is None:
            return True

        try:
            answers = await resolver.resolve(domain, "MX")
            return len(answers) > 0
        except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer, dns.resolver.YXDOMAIN):
            logger.info(f"No MX records for domain {domain}")
            return False
        except (dns.exception.Timeout, dns.resolver.NoNameservers) as e:
            logger.warning(f"MX lookup unavailable for {domain}, allowing: {str(e)}")
            return True
        except dns.exception.DNSException as e:
            logger.error(f"MX record lookup failed for {domain}: {str(e)}")
            return False
