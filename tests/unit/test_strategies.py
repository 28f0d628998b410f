"""Tests for the individual healing strategies against a scripted page."""

from __future__ import annotations

import pytest

from selfheal.models.domain import ElementInfo, ElementSummary, ParentInfo
from selfheal.strategies import (
    AriaStrategy,
    CssPathStrategy,
    DataTestIdStrategy,
    IdStrategy,
    TextStrategy,
)
from selfheal.strategies.aria import label_similarity
from selfheal.strategies.css_path import build_candidate_selectors, validate_match
from selfheal.strategies.data_testid import score_test_id_similarity
from selfheal.strategies.text import text_similarity
from selfheal.types import HealingStrategyName


@pytest.mark.unit
class TestIdStrategy:
    @pytest.mark.asyncio
    async def test_exact_id_match(self, fake_page) -> None:
        fake_page.add("#submit-btn", tagName="button", id="submit-btn")
        stored = ElementInfo(tag_name="button", id="submit-btn")

        result = await IdStrategy().heal("#submit-btn", stored, fake_page)

        assert result.found is True
        assert result.confidence == 1.0
        assert result.selector == "#submit-btn"
        assert result.strategy == HealingStrategyName.ID
        assert result.element_info is not None
        assert result.element_info.tag_name == "button"

    @pytest.mark.asyncio
    async def test_falls_back_to_stored_id(self, fake_page) -> None:
        fake_page.add("#login", tagName="button", id="login")
        stored = ElementInfo(tag_name="button", id="login")

        result = await IdStrategy().heal(".old-login", stored, fake_page)

        assert result.found is True
        assert result.selector == "#login"

    @pytest.mark.asyncio
    async def test_no_id_available(self, fake_page) -> None:
        result = await IdStrategy().heal(".primary", None, fake_page)
        assert result.found is False
        assert result.confidence == 0.0
        assert "No ID found" in result.details

    @pytest.mark.asyncio
    async def test_partial_id_match(self, fake_page) -> None:
        fake_page.collections["[id]"] = [
            {"tagName": "button", "id": "submit-button", "index": 0},
            {"tagName": "div", "id": "header", "index": 1},
        ]
        fake_page.add("#submit-button", tagName="button", id="submit-button")

        result = await IdStrategy().heal("#submit-btn", None, fake_page)

        assert result.found is True
        assert result.selector == "#submit-button"
        # one component matched (+1) and similar length (+0.5) over 2 + 0.5
        assert result.confidence == pytest.approx(0.6)

    @pytest.mark.asyncio
    async def test_partial_match_tag_penalty(self, fake_page) -> None:
        fake_page.collections["[id]"] = [{"tagName": "a", "id": "submit-link", "index": 0}]
        fake_page.add("#submit-link", tagName="a", id="submit-link")
        stored = ElementInfo(tag_name="button", id="submit-btn")

        result = await IdStrategy().heal("#submit-btn", stored, fake_page)

        assert result.found is True
        assert result.confidence == pytest.approx(0.6 * 0.7)
        assert "tag differs" in result.details

    @pytest.mark.asyncio
    async def test_driver_error_becomes_not_found(self, fake_page) -> None:
        fake_page.broken.add("#submit-btn")

        result = await IdStrategy().heal("#submit-btn", None, fake_page)

        assert result.found is False
        assert result.details.startswith("Error during id healing")

    @pytest.mark.asyncio
    async def test_malformed_page_payload(self, fake_page) -> None:
        fake_page.add("#submit-btn", id="submit-btn")

        result = await IdStrategy().heal("#submit-btn", None, fake_page)

        assert result.found is False
        assert result.details.startswith("Unexpected ElementInfo payload")


@pytest.mark.unit
class TestDataTestIdStrategy:
    @pytest.mark.asyncio
    async def test_exact_match(self, fake_page) -> None:
        fake_page.add('[data-testid="submit-btn"]', tagName="button", testId="submit-btn")

        result = await DataTestIdStrategy().heal('[data-testid="submit-btn"]', None, fake_page)

        assert result.found is True
        assert result.confidence == 1.0
        assert result.selector == '[data-testid="submit-btn"]'

    @pytest.mark.asyncio
    async def test_separator_variant(self, fake_page) -> None:
        fake_page.collections["[data-testid]"] = [{"tagName": "button", "testId": "submit_btn"}]
        fake_page.add('[data-testid="submit_btn"]', tagName="button", testId="submit_btn")
        stored = ElementInfo(tag_name="button", test_id="submit-btn")

        result = await DataTestIdStrategy().heal('[data-testid="submit-btn"]', stored, fake_page)

        assert result.found is True
        assert result.selector == '[data-testid="submit_btn"]'
        assert 0.9 < result.confidence < 1.0

    @pytest.mark.asyncio
    async def test_attribute_fallback(self, fake_page) -> None:
        fake_page.collections["[data-testid]"] = [
            {"tagName": "button", "testId": "checkout", "text": "Place order", "type": "submit"},
        ]
        fake_page.add('[data-testid="checkout"]', tagName="button", testId="checkout")
        stored = ElementInfo(tag_name="button", text_content="Place order", type="submit")

        result = await DataTestIdStrategy().heal("#old", stored, fake_page)

        assert result.found is True
        # tag (2) + text (1.5) + type (1) over 7.5
        assert result.confidence == pytest.approx(4.5 / 7.5)

    @pytest.mark.asyncio
    async def test_nothing_to_match(self, fake_page) -> None:
        result = await DataTestIdStrategy().heal("#old", None, fake_page)
        assert result.found is False

    def test_similarity_scores(self) -> None:
        assert score_test_id_similarity("submit-btn", "Submit_Btn") == 0.95
        assert score_test_id_similarity("submit-btn", "submit-btn-v2") == 0.8
        assert score_test_id_similarity("submit-btn-v2", "submit-btn") == 0.7


@pytest.mark.unit
class TestAriaStrategy:
    @pytest.mark.asyncio
    async def test_exact_label(self, fake_page) -> None:
        fake_page.add('[aria-label="Close dialog"]', tagName="button", ariaLabel="Close dialog")

        result = await AriaStrategy().heal('[aria-label="Close dialog"]', None, fake_page)

        assert result.found is True
        assert result.confidence == 1.0

    @pytest.mark.asyncio
    async def test_fuzzy_label(self, fake_page) -> None:
        fake_page.collections["[aria-label]"] = [
            {"tagName": "button", "ariaLabel": "Close the dialog"},
        ]
        fake_page.add('[aria-label="Close the dialog"]', tagName="button")

        result = await AriaStrategy().heal('[aria-label="Close dialog"]', None, fake_page)

        assert result.found is True
        assert result.selector == '[aria-label="Close the dialog"]'
        assert result.confidence == pytest.approx(0.75 * 0.9)

    @pytest.mark.asyncio
    async def test_role_and_label(self, fake_page) -> None:
        fake_page.collections['[role="button"]'] = [
            {"tagName": "div", "ariaRole": "button", "ariaLabel": "Close window"},
        ]
        fake_page.add('[role="button"][aria-label="Close window"]', tagName="div")
        stored = ElementInfo(tag_name="div", aria_label="Close", aria_role="button")

        result = await AriaStrategy().heal("#close", stored, fake_page)

        assert result.found is True
        assert result.selector == '[role="button"][aria-label="Close window"]'
        assert result.confidence == pytest.approx(0.85 * 0.95)

    @pytest.mark.asyncio
    async def test_role_only_uses_index(self, fake_page) -> None:
        fake_page.collections['[role="tab"]'] = [
            {"tagName": "li", "text": "Profile", "index": 0},
            {"tagName": "li", "text": "Billing details", "index": 1},
        ]
        fake_page.add('[role="tab"] >> nth=1', tagName="li")
        stored = ElementInfo(tag_name="li", aria_role="tab", text_content="Billing")

        result = await AriaStrategy().heal("#billing-tab", stored, fake_page)

        assert result.found is True
        assert result.selector == '[role="tab"] >> nth=1'
        assert result.confidence == pytest.approx(0.75)

    @pytest.mark.asyncio
    async def test_no_aria_data(self, fake_page) -> None:
        result = await AriaStrategy().heal("#x", ElementInfo(tag_name="div"), fake_page)
        assert result.found is False

    def test_label_similarity(self) -> None:
        assert label_similarity("Close", "close", contained=0.8, fuzzy="words") == 1.0
        assert label_similarity("Close", "Close dialog", contained=0.8, fuzzy="words") == 0.85
        assert label_similarity("Close dialog", "Close", contained=0.8, fuzzy="words") == 0.8


@pytest.mark.unit
class TestTextStrategy:
    @pytest.mark.asyncio
    async def test_exact_text(self, fake_page) -> None:
        fake_page.add('text="Sign in"', tagName="button", textContent="Sign in")

        result = await TextStrategy().heal('text="Sign in"', None, fake_page)

        assert result.found is True
        assert result.confidence == 1.0
        assert result.selector == 'text="Sign in"'

    @pytest.mark.asyncio
    async def test_exact_text_tag_mismatch(self, fake_page) -> None:
        fake_page.add('text="Sign in"', tagName="a", textContent="Sign in")
        stored = ElementInfo(tag_name="button", text_content="Sign in")

        result = await TextStrategy().heal("#signin", stored, fake_page)

        assert result.confidence == 0.85

    @pytest.mark.asyncio
    async def test_case_insensitive(self, fake_page) -> None:
        fake_page.add('text="Sign in"i', tagName="button", textContent="SIGN IN")

        result = await TextStrategy().heal('text="Sign in"', None, fake_page)

        assert result.found is True
        assert result.confidence == 0.95

    @pytest.mark.asyncio
    async def test_similarity_scan(self, fake_page) -> None:
        fake_page.collections["button"] = [
            {"tagName": "button", "text": "Sign in now", "directText": "Sign in now"},
            {"tagName": "button", "text": "Cancel", "directText": "Cancel"},
        ]
        fake_page.add('text="Sign in now"', tagName="button", textContent="Sign in now")
        stored = ElementInfo(tag_name="button", text_content="Sign in")

        result = await TextStrategy().heal("button.login", stored, fake_page)

        assert result.found is True
        assert result.selector == 'text="Sign in now"'
        assert result.confidence == pytest.approx(0.7 + 7 / 11 * 0.25)

    @pytest.mark.asyncio
    async def test_regex_fallback(self, fake_page) -> None:
        fake_page.add("text=/log.*into.*account/i", tagName="a")

        result = await TextStrategy().heal('text="Log into account"', None, fake_page)

        assert result.found is True
        assert result.selector == "text=/log.*into.*account/i"
        assert result.confidence == 0.7

    @pytest.mark.asyncio
    async def test_no_text(self, fake_page) -> None:
        result = await TextStrategy().heal("#x", None, fake_page)
        assert result.found is False

    def test_text_similarity_prefers_direct_text(self) -> None:
        element = ElementSummary(tag_name="button", text="Submit Order", direct_text="Submit Order")
        assert text_similarity("submit order", element) == 1.0

    def test_text_similarity_empty_element(self) -> None:
        assert text_similarity("submit", ElementSummary(tag_name="div")) == 0.0


@pytest.mark.unit
class TestCssPathValidation:
    def test_tag_mismatch_is_zero(self) -> None:
        stored = ElementInfo(tag_name="button", classes=["btn"], text_content="Submit")
        found = ElementInfo(tag_name="div", classes=["btn"], text_content="Submit")
        assert validate_match(found, stored).score == 0.0

    def test_full_agreement(self) -> None:
        info = ElementInfo(
            tag_name="button",
            type="submit",
            text_content="Submit",
            classes=["btn", "primary"],
            aria_label="Go",
        )
        assert validate_match(info, info).score == pytest.approx(1.0)

    def test_type_mismatch_penalised(self) -> None:
        stored = ElementInfo(tag_name="input", type="email")
        found = ElementInfo(tag_name="input", type="text")
        validation = validate_match(found, stored)
        assert validation.score == pytest.approx(0.2)
        assert "Mismatched: [type]" in validation.details

    def test_candidate_order(self) -> None:
        info = ElementInfo(tag_name="input", id="email", test_id="email-input", name="email")
        selectors = [c.selector for c in build_candidate_selectors(info)]
        assert selectors == ["#email", '[data-testid="email-input"]', 'input[name="email"]']


@pytest.mark.unit
class TestCssPathStrategy:
    @pytest.mark.asyncio
    async def test_requires_stored_info(self, fake_page) -> None:
        result = await CssPathStrategy().heal("#x", None, fake_page)
        assert result.found is False
        assert "requires stored element info" in result.details

    @pytest.mark.asyncio
    async def test_attribute_candidate(self, fake_page) -> None:
        fake_page.add(
            'input[name="email"]', tagName="input", name="email", type="email", classes=["field"]
        )
        stored = ElementInfo(tag_name="input", name="email", type="email", classes=["field"])

        result = await CssPathStrategy().heal("#email", stored, fake_page)

        assert result.found is True
        assert result.selector == 'input[name="email"]'
        # 0.9 base x (0.3 tag + 0.2 type + 0.2 classes)
        assert result.confidence == pytest.approx(0.63)

    @pytest.mark.asyncio
    async def test_class_combination(self, fake_page) -> None:
        fake_page.counts = {"button.btn.btn-primary": 1, "button.btn": 4}
        fake_page.add("button.btn.btn-primary", tagName="button", classes=["btn", "btn-primary"])
        stored = ElementInfo(tag_name="button", classes=["btn", "btn-primary"])

        result = await CssPathStrategy().heal("#buy", stored, fake_page)

        assert result.found is True
        assert result.selector == "button.btn.btn-primary"
        assert result.confidence == 0.85

    @pytest.mark.asyncio
    async def test_class_combination_few_matches(self, fake_page) -> None:
        fake_page.counts = {"button.btn": 2}
        fake_page.add("button.btn:first-of-type", tagName="button", classes=["btn"])
        stored = ElementInfo(tag_name="button", classes=["btn"])

        result = await CssPathStrategy().heal("#buy", stored, fake_page)

        assert result.selector == "button.btn:first-of-type"
        assert result.confidence == 0.85

    @pytest.mark.asyncio
    async def test_parent_child_position(self, fake_page) -> None:
        fake_page.children[("#menu", "li")] = [
            {"parentIndex": 0, "position": 1, "text": "Home", "classes": []},
            {"parentIndex": 0, "position": 3, "text": "Settings", "classes": []},
        ]
        fake_page.add("#menu > li:nth-child(3)", tagName="li", textContent="Settings")
        stored = ElementInfo(
            tag_name="li", text_content="Settings", parent=ParentInfo(tag_name="ul", id="menu")
        )

        result = await CssPathStrategy().heal("#settings", stored, fake_page)

        assert result.found is True
        assert result.selector == "#menu > li:nth-child(3)"
        assert result.confidence == pytest.approx(0.7)

    @pytest.mark.asyncio
    async def test_nothing_found(self, fake_page) -> None:
        stored = ElementInfo(tag_name="span")
        result = await CssPathStrategy().heal("#gone", stored, fake_page)
        assert result.found is False
