import pytest
from rci.UTILS.string_interpolation import EnvironmentInterpolator

def test_default_used_when_unset_or_empty():
    interp = EnvironmentInterpolator({'EMPTY': ''})
    assert interp.interpolate('${QDRANT_PORT:-6333}') == '6333'
    assert interp.interpolate('${EMPTY:-x}') == 'x'

def test_dash_without_colon_keeps_empty_value():
    interp = EnvironmentInterpolator({'EMPTY': ''})
    assert interp.interpolate('[${EMPTY-x}]') == '[]'
    assert interp.interpolate('${UNSET-x}') == 'x'

def test_value_wins_over_default():
    interp = EnvironmentInterpolator({'QDRANT_PORT': '7000'})
    assert interp.interpolate('"${QDRANT_PORT:-6333}:6333"') == '"7000:6333"'

def test_plus_modifier():
    interp = EnvironmentInterpolator({'GPU': '1'})
    assert interp.interpolate('${GPU:+nvidia}') == 'nvidia'
    assert interp.interpolate('${NOGPU:+nvidia}') == ''

def test_unset_without_default_is_empty():
    interp = EnvironmentInterpolator({})
    assert interp.interpolate('a=${MISSING} b=$ALSO_MISSING') == 'a= b='

def test_required_variable():
    with pytest.raises(KeyError, match='MODEL'):
        EnvironmentInterpolator({}).interpolate('${MODEL:?set a model}')

def test_escaped_dollar():
    interp = EnvironmentInterpolator({'X': '1'})
    assert interp.interpolate('cost $$X') == 'cost $X'
