"""
Test Reference Boundary Loading

Uses a tiny two-state GeoJSON written to a temp dir instead of the
us-atlas download.
"""
import geopandas as gpd
import pytest
from shapely.geometry import Polygon, box

from hexheat.query import Bounds
from hexheat.region import boundary_bounds, load_state_boundary
from hexheat.region.boundaries import clean_polygons, select_state

NJ = box(-75.56, 38.93, -73.89, 41.36)
NY = box(-79.76, 40.5, -71.85, 45.02)


@pytest.fixture
def states_gdf():
    return gpd.GeoDataFrame(
        {"STATEFP": ["34", "36"], "name": ["New Jersey", "New York"]},
        geometry=[NJ, NY],
        crs="EPSG:4326",
    )


@pytest.fixture
def states_file(tmp_path, states_gdf):
    path = tmp_path / "states.geojson"
    states_gdf.to_file(path, driver="GeoJSON")
    return str(path)


class TestSelectState:
    @pytest.mark.parametrize("state", ["34", 34, "NJ", "nj", "New Jersey", "new jersey"])
    def test_matches(self, states_gdf, state):
        picked = select_state(states_gdf, state)
        assert list(picked["name"]) == ["New Jersey"]

    def test_unknown_state(self, states_gdf):
        with pytest.raises(ValueError):
            select_state(states_gdf, "TX")


class TestCleanPolygons:
    def test_drops_empty_and_repairs_invalid(self):
        bowtie = Polygon([(0, 0), (1, 1), (1, 0), (0, 1)])
        gdf = gpd.GeoDataFrame(geometry=[NJ, Polygon(), None, bowtie], crs="EPSG:4326")
        cleaned = clean_polygons(gdf)
        assert len(cleaned) == 2
        assert cleaned.is_valid.all()


class TestLoadStateBoundary:
    def test_loads_one_state(self, states_file):
        outline = load_state_boundary(states_file, "NJ", layer=None)
        assert outline.equals(NJ)
        assert boundary_bounds(outline) == Bounds(38.93, -75.56, 41.36, -73.89)

    def test_reprojects(self, tmp_path, states_gdf):
        path = tmp_path / "states_3857.geojson"
        states_gdf.to_crs("EPSG:3857").to_file(path, driver="GeoJSON")
        outline = load_state_boundary(str(path), "34", layer=None)
        south, west, north, east = boundary_bounds(outline).as_tuple()
        assert south == pytest.approx(38.93, abs=1e-6)
        assert east == pytest.approx(-73.89, abs=1e-6)

    def test_missing_state(self, states_file):
        with pytest.raises(ValueError):
            load_state_boundary(states_file, "Texas", layer=None)
