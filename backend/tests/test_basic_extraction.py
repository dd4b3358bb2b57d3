from services.basic_extraction import extract_basic_data, is_build_to_rent


def test_address_from_structured_data_first():
    html = (
        '<html><head><title>Studio - Wembley Park | Agent</title>'
        '<script type="application/ld+json">{"address": "Olympic Way, Wembley HA9 0GQ"}</script>'
        '</head><body>Contact our office, 123 High Road, Wembley HA0 2AA</body></html>'
    )
    data = extract_basic_data(html, "https://example.com/1")
    assert data["name"] == "Studio"
    assert data["address"] == "Olympic Way, Wembley HA9 0GQ"
    assert data["url"] == "https://example.com/1"


def test_address_from_street_pattern():
    html = "<html><body><p>12 Mill Road, Cambridge, CB1 2AD</p></body></html>"
    assert extract_basic_data(html)["address"] == "12 Mill Road, Cambridge, CB1 2AD"


def test_bare_postcode_fallback():
    html = "<html><body><p>somewhere n1 9gu</p></body></html>"
    assert extract_basic_data(html)["address"] == "n1 9gu"


def test_no_title_or_address():
    data = extract_basic_data("<html><body><p>Nothing here</p></body></html>")
    assert data["name"] == "Property"
    assert data["address"] == ""


def test_build_to_rent_detection():
    assert is_build_to_rent("<p>A Greystar managed home</p>")
    assert is_build_to_rent("<p>Purpose-built rental with concierge</p>")
    assert not is_build_to_rent("<p>Victorian terrace house</p>")
