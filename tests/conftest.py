"""
Global fixtures for the geoviewport test suite.
"""
import pytest
import numpy as np
from typing import Any, Dict
from unittest.mock import MagicMock

from geoviewport.core.config import Settings
from geoviewport.services.projection import Viewport, WebMercatorViewport
from geoviewport.utils.matrix_utils import translation_matrix

SAN_FRANCISCO = {"longitude": -122.4, "latitude": 37.75}


@pytest.fixture(scope="session")
def mock_settings_base_values() -> Dict[str, Any]:
    """
    Provides a dictionary of base values for a mocked Settings object.
    Tests can override these by providing their own dictionary to mock_settings.
    """
    return {
        "APP_NAME": "geoviewport-test",
        "LOG_LEVEL": "DEBUG",
        "LOG_FORMAT": "%(levelname)s %(name)s %(message)s",
        "DEFAULT_FOVY": 75.0,
        "DEFAULT_NEAR": 0.1,
        "DEFAULT_FAR": 1000.0,
        "DEFAULT_ZOOM": 0.0,
        "EQUALS_EPSILON": 1e-12,
        "WEB_MERCATOR_DEFAULT_ALTITUDE": 1.5,
        "WEB_MERCATOR_FAR_Z_MULTIPLIER": 1.01,
        "log_level_value": 10,
    }


@pytest.fixture
def mock_settings(mock_settings_base_values: Dict[str, Any]) -> MagicMock:
    """Provides a MagicMock instance of the package Settings."""
    mocked_settings = MagicMock(spec=Settings)
    for key, value in mock_settings_base_values.items():
        setattr(mocked_settings, key, value)
    return mocked_settings


@pytest.fixture
def flat_viewport() -> Viewport:
    """800x600 non-geospatial viewport, identity view, default perspective."""
    return Viewport(width=800, height=600)


@pytest.fixture
def camera_viewport() -> Viewport:
    """Non-geospatial viewport with the camera pulled back 100 units from the z=0 plane."""
    return Viewport(width=800, height=600, view_matrix=translation_matrix([0, 0, -100]))


@pytest.fixture
def geo_viewport() -> Viewport:
    """Geospatial viewport anchored on San Francisco at zoom 12, identity view."""
    return Viewport(width=800, height=600, zoom=12, **SAN_FRANCISCO)


@pytest.fixture
def geo_camera_viewport() -> Viewport:
    """Geospatial viewport at zoom 12 with the camera 500 world units above the map."""
    return Viewport(
        width=800,
        height=600,
        zoom=12,
        view_matrix=translation_matrix([0, 0, -500]),
        **SAN_FRANCISCO,
    )


@pytest.fixture
def map_viewport() -> WebMercatorViewport:
    """Map-style viewport with pitch and bearing."""
    return WebMercatorViewport(width=800, height=600, zoom=12, pitch=30, bearing=20, **SAN_FRANCISCO)


@pytest.fixture
def permuted_view_matrix() -> np.ndarray:
    """View matrix swapping world y and z, so pixel rays run parallel to z planes."""
    return np.array(
        [
            [1.0, 0.0, 0.0, 0.0],
            [0.0, 0.0, 1.0, 0.0],
            [0.0, 1.0, 0.0, 0.0],
            [0.0, 0.0, 0.0, 1.0],
        ]
    )
