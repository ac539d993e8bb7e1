from unittest.mock import AsyncMock, MagicMock, patch

import dns.exception
import dns.resolver
import httpx
import pytest

from app.api.utils.email_verifier import (
    DISPOSABLE_REASON,
    INVALID_FORMAT_REASON,
    NO_MX_REASON,
    PROVIDER_ALLOW_REASON,
    PROVIDER_REJECT_REASON,
    EmailValidator,
    is_disposable_email,
    normalize_email,
    suggest_typo_correction,
    validate_email_format,
)
from app.api.utils.zerobounce import DeliverabilityClient, DeliverabilityResult


def _provider(result=None, enabled=True):
    client = MagicMock()
    client.enabled = enabled
    client.validate = AsyncMock(return_value=result)
    return client


def _validator(provider=None, check_mx=False, on_provider_error="allow"):
    return EmailValidator(
        deliverability_client=provider or _provider(enabled=False),
        check_mx=check_mx,
        on_provider_error=on_provider_error,
    )


class TestFormat:
    @pytest.mark.parametrize(
        "email",
        [
            "user@example.com",
            "first.last+tag@sub.example.co.uk",
            "o'brien@example.ie",
        ],
    )
    def test_accepts_well_formed_addresses(self, email):
        assert validate_email_format(email)

    @pytest.mark.parametrize(
        "email",
        [
            "",
            "not-an-email",
            "user@",
            "@example.com",
            "user@localhost",
            "user@example.c",
            "user..name@example.com",
            "user@-example.com",
            ("a" * 65) + "@example.com",
        ],
    )
    def test_rejects_malformed_addresses(self, email):
        assert not validate_email_format(email)

    def test_rejects_overlong_domain(self):
        domain = ".".join(["a" * 60] * 5) + ".com"
        assert not validate_email_format(f"user@{domain}")

    def test_rejects_address_over_254_characters(self):
        email = ("a" * 64) + "@" + ("b" * 62 + ".") * 3 + "com"

        assert len(email) == 257
        assert not validate_email_format(email)

    def test_normalize_email(self):
        assert normalize_email("  Ada@Example.COM ") == "ada@example.com"


def test_disposable_domains():
    assert is_disposable_email("someone@mailinator.com")
    assert is_disposable_email("someone@YOPMAIL.com")
    assert not is_disposable_email("someone@gmail.com")


def test_typo_suggestion():
    assert suggest_typo_correction("ada@gmial.com") == "ada@gmail.com"
    assert suggest_typo_correction("ada@hotmial.com") == "ada@hotmail.com"
    assert suggest_typo_correction("ada@gmail.com") is None


@pytest.mark.asyncio
async def test_malformed_email_rejected_before_network():
    provider = _provider(DeliverabilityResult(True))
    validator = _validator(provider=provider, check_mx=True)

    with patch.object(validator, "has_mx_records", new=AsyncMock()) as mx:
        result = await validator.validate("not-an-email")

    assert not result.valid
    assert result.reason == INVALID_FORMAT_REASON
    mx.assert_not_awaited()
    provider.validate.assert_not_awaited()


@pytest.mark.parametrize("check_deliverability", [True, False])
@pytest.mark.asyncio
async def test_disposable_rejected_regardless_of_flag(check_deliverability):
    validator = _validator(provider=_provider(DeliverabilityResult(True)))

    result = await validator.validate("user@mailinator.com", check_deliverability)

    assert not result.valid
    assert result.reason == DISPOSABLE_REASON


@pytest.mark.asyncio
async def test_typo_rejected_with_suggestion():
    result = await _validator().validate("Ada@Gmial.com")

    assert not result.valid
    assert result.reason == "Did you mean ada@gmail.com?"
    assert result.suggestion == "ada@gmail.com"


@pytest.mark.asyncio
async def test_valid_without_network_checks():
    result = await _validator().validate("ada@example.com", check_deliverability=False)
    assert result.valid
    assert result.reason is None


@pytest.mark.asyncio
async def test_missing_mx_records_rejected():
    validator = _validator(check_mx=True)

    with patch.object(validator, "has_mx_records", new=AsyncMock(return_value=False)):
        result = await validator.validate("ada@no-mail.example")

    assert not result.valid
    assert result.reason == NO_MX_REASON


@pytest.mark.asyncio
async def test_mx_check_skipped_when_disabled():
    validator = _validator(check_mx=False)

    with patch.object(validator, "has_mx_records", new=AsyncMock()) as mx:
        result = await validator.validate("ada@example.com")

    assert result.valid
    mx.assert_not_awaited()


@pytest.mark.asyncio
async def test_provider_verdict_is_returned():
    provider = _provider(DeliverabilityResult(False, "Email address is flagged as spam", "spam"))
    result = await _validator(provider=provider).validate("ada@example.com")

    assert not result.valid
    assert result.reason == "Email address is flagged as spam"
    assert result.status == "spam"
    provider.validate.assert_awaited_once_with("ada@example.com")


@pytest.mark.asyncio
async def test_provider_error_allowed_by_default_policy():
    provider = _provider(DeliverabilityResult(False, "down", provider_error=True))
    result = await _validator(provider=provider).validate("ada@example.com")

    assert result.valid
    assert result.reason == PROVIDER_ALLOW_REASON


@pytest.mark.asyncio
async def test_provider_error_rejected_by_reject_policy():
    provider = _provider(DeliverabilityResult(False, "down", provider_error=True))
    validator = _validator(provider=provider, on_provider_error="reject")

    result = await validator.validate("ada@example.com")

    assert not result.valid
    assert result.reason == PROVIDER_REJECT_REASON


def test_unknown_provider_policy_rejected():
    with pytest.raises(ValueError):
        _validator(on_provider_error="maybe")


class TestMxLookup:
    def _with_resolver(self, resolve):
        validator = _validator(check_mx=True)
        resolver = MagicMock()
        resolver.resolve = resolve
        validator._resolver = resolver
        return validator

    @pytest.mark.asyncio
    async def test_records_found(self):
        validator = self._with_resolver(AsyncMock(return_value=["mx1"]))
        assert await validator.has_mx_records("example.com")

    @pytest.mark.asyncio
    async def test_empty_answer(self):
        validator = self._with_resolver(AsyncMock(return_value=[]))
        assert not await validator.has_mx_records("example.com")

    @pytest.mark.parametrize("error", [dns.resolver.NXDOMAIN(), dns.resolver.NoAnswer()])
    @pytest.mark.asyncio
    async def test_missing_domain_or_records(self, error):
        validator = self._with_resolver(AsyncMock(side_effect=error))
        assert not await validator.has_mx_records("nope.example")

    @pytest.mark.parametrize("error", [dns.exception.Timeout(), dns.resolver.NoNameservers()])
    @pytest.mark.asyncio
    async def test_lookup_unavailable_allows(self, error):
        validator = self._with_resolver(AsyncMock(side_effect=error))
        assert await validator.has_mx_records("example.com")

    @pytest.mark.asyncio
    async def test_no_resolver_configuration_allows(self):
        validator = _validator(check_mx=True)

        with patch(
            "dns.asyncresolver.Resolver",
            side_effect=dns.resolver.NoResolverConfiguration(),
        ):
            assert await validator.has_mx_records("example.com")


@pytest.mark.asyncio
async def test_unexpected_provider_body_falls_back_to_policy():
    client = DeliverabilityClient(
        api_key="test-key",
        base_url="https://zb.test/v2",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json="unexpected")),
    )
    validator = EmailValidator(deliverability_client=client, check_mx=False, on_provider_error="allow")

    result = await validator.validate("ada@example.com")

    assert result.valid
    assert result.reason == PROVIDER_ALLOW_REASON
