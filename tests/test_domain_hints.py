import pytest

from core.domain_hints import DOMAIN_KEYWORDS, infer_domain_hints, pool_domain_hints
from core.chunk_types import DomainHint


def test_name_keywords_weigh_most():
    """Test that the top hint comes from keywords in the name."""
    hints = infer_domain_hints(
        "authenticateUser",
        "Check the login password",
        [],
        "def authenticate_user(password): ...",
    )

    assert hints[0].category == "authentication"
    assert hints[0].source == "name"
    assert hints[0].confidence == pytest.approx(0.7)
    assert "login" in hints[0].keywords


def test_hints_are_bounded_and_sorted():
    """Test at most three hints, most confident first."""
    content = """
    def process_payment(order, user, token):
        logger.info("charging card")
        cache.store(order)
        queue.publish(event)
        validate(order)
    """
    hints = infer_domain_hints("process_payment", None, [], content)

    assert 0 < len(hints) <= 3
    confidences = [h.confidence for h in hints]
    assert confidences == sorted(confidences, reverse=True)
    assert all(0.0 <= c <= 1.0 for c in confidences)


def test_confidence_is_capped():
    """Test confidence never exceeds 1.0."""
    content = "payment invoice billing charge refund transaction order checkout price"
    hints = infer_domain_hints("paymentInvoiceBilling", None, [], content)

    assert hints[0].category == "payment"
    assert hints[0].confidence == 1.0


def test_no_keywords_no_hints():
    """Test text without any keyword yields nothing."""
    assert infer_domain_hints("zzz", None, [], "") == []


def test_mainframe_vocabulary():
    """Test mainframe synonyms map to the same categories."""
    hints = infer_domain_hints("READ-VSAM-CURSOR", None, [], "EXEC SQL FETCH CURSOR END-EXEC")
    categories = [h.category for h in hints]

    assert "data-access" in categories


def test_keyword_table_is_read_only():
    """Test the keyword dictionary cannot be modified."""
    assert len(DOMAIN_KEYWORDS) == 26
    assert DOMAIN_KEYWORDS["unknown"] == ()
    with pytest.raises(TypeError):
        DOMAIN_KEYWORDS["payment"] = ("coin",)


def test_pool_keeps_best_per_category():
    """Test pooling keeps the strongest hint per category."""
    first = [
        DomainHint(category="payment", confidence=0.4, source="content", keywords=["order"]),
        DomainHint(category="logging", confidence=0.3, source="content", keywords=["log"]),
    ]
    second = [
        DomainHint(category="payment", confidence=0.9, source="name", keywords=["payment"]),
        DomainHint(category="caching", confidence=0.2, source="content", keywords=["cache"]),
        DomainHint(category="search", confidence=0.1, source="content", keywords=["find"]),
    ]

    pooled = pool_domain_hints([first, second])

    assert [h.category for h in pooled] == ["payment", "logging", "caching"]
    assert pooled[0].confidence == 0.9
