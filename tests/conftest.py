import pytest

from tests.factories import FIXED_NOW


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def readme_text():
    return (
        "# Project\n"
        "\n"
        "Intro paragraph.\n"
        "\n"
        "## Usage\n"
        "\n"
        "Run it.\n"
        "\n"
        "## 📄 License\n"
        "\n"
        "MIT\n"
    )
