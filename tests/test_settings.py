import pytest

from dsgeforecast.errors import InvalidEnumValue
from dsgeforecast.settings import CondType, InputType, OutputType, Smoother, ForecastSettings


@pytest.mark.parametrize("value, expected", [
    ("none", CondType.NONE),
    (":semi", CondType.SEMI),
    ("FULL", CondType.FULL),
    (CondType.FULL, CondType.FULL),
])
def test_parse_cond_type(value, expected):
    assert CondType.parse(value) is expected


def test_parse_rejects_unknown_values():
    with pytest.raises(InvalidEnumValue) as excinfo:
        InputType.parse("median")
    assert excinfo.value.allowed == ["mode", "mean", "full", "subset"]

    with pytest.raises(InvalidEnumValue):
        OutputType.parse(3)


def test_parse_all_and_str():
    assert OutputType.parse_all(["simple", ":all"]) == [OutputType.SIMPLE, OutputType.ALL]
    assert str(InputType.MODE) == "mode"
    assert InputType.MEAN.single_draw and not InputType.SUBSET.single_draw


def test_defaults():
    settings = ForecastSettings()
    assert settings.n_presample_periods == 0
    assert settings.forecast_horizons == 12
    assert settings.forecast_smoother is Smoother.DURBIN_KOOPMAN
    assert not settings.forecast_pseudoobservables
    assert settings.n_workers == 1


@pytest.mark.parametrize("kwargs", [
    dict(n_presample_periods=-1),
    dict(forecast_horizons=0),
    dict(n_workers=0),
])
def test_invalid_settings(kwargs):
    with pytest.raises(ValueError):
        ForecastSettings(**kwargs)


def test_smoother_is_parsed():
    assert ForecastSettings(forecast_smoother=":kalman").forecast_smoother is Smoother.KALMAN
    with pytest.raises(InvalidEnumValue):
        ForecastSettings(forecast_smoother="carter_kohn")


def test_replace_and_from_dict():
    settings = ForecastSettings.from_dict({"forecast_horizons": 8, "subset_inds": [1, 2]})
    assert settings.forecast_horizons == 8
    assert settings.subset_inds == (1, 2)
    assert settings.replace(seed=4).seed == 4

    with pytest.raises(ValueError):
        ForecastSettings.from_dict({"forecast_horizon": 8})
