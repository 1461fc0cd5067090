from src.utils.formatting import (flag_label, fmt, fmt_money, fmt_pct, risk_badge,
                                  slugify, state_name, title_case)


def test_fmt_money_scales():
    assert fmt_money(1_234_000_000) == "$1.23B"
    assert fmt_money(4_500_000) == "$4.5M"
    assert fmt_money(12_345) == "$12K"
    assert fmt_money(950) == "$950"
    assert fmt_money(None) == "N/A"


def test_fmt_thousands_separators():
    assert fmt(1234567) == "1,234,567"
    assert fmt(1234.5) == "1,234.5"
    assert fmt(10.0) == "10"
    assert fmt(None) == "N/A"


def test_fmt_pct():
    assert fmt_pct(12.345) == "12.3%"
    assert fmt_pct(None) == "N/A"


def test_slugify():
    assert slugify("Atorvastatin Calcium") == "atorvastatin-calcium"
    assert slugify("  Nurse Practitioner / PA ") == "nurse-practitioner-pa"
    assert slugify("Family Practice") == "family-practice"
    assert slugify("") == ""


def test_title_case():
    assert title_case("SPRINGFIELD") == "Springfield"
    assert title_case("new york") == "New York"


def test_risk_badge_defaults_to_low():
    assert risk_badge("high") == "🔴 High Risk"
    assert risk_badge("elevated") == "🟠 Elevated"
    assert risk_badge("unknown") == "🟢 Low"
    assert risk_badge(None) == "🟢 Low"


def test_flag_labels_cover_current_and_legacy_codes():
    assert flag_label("opioid_benzo_coprescriber") == "Opioid + benzodiazepine co-prescriber"
    assert flag_label("high_opioid") == "High opioid prescribing rate"
    assert flag_label("some_new_flag") == "some new flag"


def test_state_name():
    assert state_name("il") == "Illinois"
    assert state_name("DC") == "District of Columbia"
    assert state_name("ZZ") == "ZZ"
