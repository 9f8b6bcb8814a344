import pytest

from owm_weather_mock.symbols import beaufort_name, cloud_name, compass_point, condition_code, symbol_for


@pytest.mark.parametrize(
    "rain,visibility,clouds,expected",
    [
        (0.0, 10000, 0, 800),
        (0.0, 10000, 14, 800),
        (0.0, 10000, 15, 801),
        (0.0, 10000, 29, 801),
        (0.0, 10000, 30, 802),
        (0.0, 10000, 60, 803),
        (0.0, 10000, 85, 804),
        (0.0, 10000, 100, 804),
        (0.1, 5000, 70, 500),
        (2.5, 5000, 70, 501),
        (7.5, 2000, 90, 501),
        (7.6, 2000, 90, 502),
        (0.0, 2000, 50, 701),
        (0.0, 1000, 100, 741),
        (3.0, 1000, 100, 741),
    ],
)
def test_condition_code(rain, visibility, clouds, expected):
    assert condition_code(rain, visibility, clouds) == expected


def test_symbol_icon_day_and_night():
    assert symbol_for(0.0, 10000, 0, daytime=True).icon == "01d"
    assert symbol_for(0.0, 10000, 0, daytime=False).icon == "01n"
    rain = symbol_for(1.0, 5000, 80)
    assert (rain.number, rain.name, rain.icon) == (500, "light rain", "10d")
    assert symbol_for(0.0, 1000, 100).icon == "50d"


def test_cloud_name_ignores_rain():
    assert cloud_name(90) == "overcast clouds"
    assert cloud_name(5) == "clear sky"


@pytest.mark.parametrize("speed,name", [(0.0, "Calm"), (4.6, "Gentle Breeze"), (18.0, "Gale"), (40.0, "Hurricane")])
def test_beaufort_name(speed, name):
    assert beaufort_name(speed) == name


@pytest.mark.parametrize("degrees,code", [(0, "N"), (11.2, "N"), (11.3, "NNE"), (90, "E"), (225, "SW"), (355, "N")])
def test_compass_point(degrees, code):
    assert compass_point(degrees)[0] == code
