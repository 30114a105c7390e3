import copy

import pytest

from url_metrics.config import ViewportAspectRatioBounds

DOM_RECT = {
    "width": 300,
    "height": 200,
    "x": 0,
    "y": 0,
    "top": 0,
    "right": 300,
    "bottom": 200,
    "left": 0,
}

VALID_PAYLOAD = {
    "uuid": "3fa85f64-5717-4562-b3fc-2c963f66afa6",
    "url": "https://example.com/page",
    "timestamp": 1700000000.123,
    "viewport": {"width": 1280, "height": 800},
    "elements": [
        {
            "isLCP": True,
            "isLCPCandidate": True,
            "xpath": "/*[0][self::HTML]/*[1][self::BODY]/*[0][self::DIV]/*[0][self::IMG]",
            "intersectionRatio": 1.0,
            "intersectionRect": DOM_RECT,
            "boundingClientRect": DOM_RECT,
        }
    ],
}


@pytest.fixture()
def payload():
    return copy.deepcopy(VALID_PAYLOAD)


@pytest.fixture()
def bounds():
    return ViewportAspectRatioBounds(minimum=0.4, maximum=2.5)
