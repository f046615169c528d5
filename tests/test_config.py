"""Tests for machine profiles, the default tool library, settings and logging."""

import logging

import pytest

from routercam.config.defaults import build_default_tool_library
from routercam.config.logging_config import setup_logging
from routercam.config.machine_profiles import (
    Firmware,
    RouterModel,
    get_profile,
    list_profiles,
)
from routercam.config.settings import AppSettings
from routercam.core.tool import Tool, ToolLibrary, ToolType
from routercam.core.units import Units


# ---------------------------------------------------------------------------
# Machine profiles
# ---------------------------------------------------------------------------


class TestProfiles:
    def test_lookup_by_enum_and_name(self):
        by_enum = get_profile(RouterModel.XCARVE_1000)
        assert get_profile("X-Carve 1000mm") is by_enum
        assert by_enum.travel_x == 750.0

    def test_unknown_profile(self):
        with pytest.raises(KeyError):
            get_profile("Bridgeport")

    def test_every_model_has_profile(self):
        assert len(list_profiles()) == len(RouterModel)

    def test_marlin_machine(self):
        assert get_profile(RouterModel.MPCNC_PRIMO).firmware is Firmware.MARLIN

    def test_str(self):
        text = str(get_profile(RouterModel.SHAPEOKO_4))
        assert "X=425" in text
        assert "rapid 10000/5000" in text


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


class TestToolLibrary:
    def test_default_library(self):
        lib = build_default_tool_library()
        assert len(lib) == 6
        assert "flat-6mm" in lib
        assert lib.get("vbit-60").tip_angle == 60.0
        assert all(t.is_valid for t in lib.list_tools())

    def test_in_memory_library_cannot_save(self):
        with pytest.raises(RuntimeError):
            build_default_tool_library().save()

    def test_save_and_reload(self, tmp_path):
        path = tmp_path / "tools.json"
        lib = ToolLibrary(path)
        lib.add(Tool("v", "V-Bit", ToolType.V_BIT, 12.0, tip_angle=90.0))
        lib.save()

        reloaded = ToolLibrary(path)
        tool = reloaded.get("v")
        assert tool.tool_type is ToolType.V_BIT
        assert tool.tip_angle == 90.0

    def test_remove_missing_is_silent(self):
        lib = ToolLibrary(None, persist=False)
        lib.remove("nothing")
        assert len(lib) == 0


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class TestSettings:
    def test_round_trip(self, tmp_path):
        path = tmp_path / "prefs" / "settings.json"
        AppSettings(default_post_processor="linuxcnc", log_level="DEBUG").save(path)
        loaded = AppSettings.load(path)
        assert loaded.default_post_processor == "linuxcnc"
        assert loaded.log_level == "DEBUG"

    def test_missing_file_gives_defaults(self, tmp_path):
        assert AppSettings.load(tmp_path / "none.json") == AppSettings()

    def test_unknown_keys_ignored(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text('{"default_units": "inch", "theme": "dark"}')
        assert AppSettings.load(path).default_units == "inch"

    def test_resolves_machine_and_units(self):
        settings = AppSettings(default_machine="X-Carve 1000mm", default_units="inch")
        assert settings.machine is get_profile(RouterModel.XCARVE_1000)
        assert settings.units is Units.INCH

    def test_unknown_machine(self):
        with pytest.raises(KeyError):
            AppSettings(default_machine="Bridgeport").machine

    def test_configure_logging_uses_saved_level(self):
        logger = logging.getLogger("routercam")
        handlers = AppSettings(log_level="ERROR").configure_logging()
        try:
            assert logger.level == logging.ERROR
        finally:
            for handler in handlers:
                logger.removeHandler(handler)
                logging.getLogger("py.warnings").removeHandler(handler)
                handler.close()
            logging.captureWarnings(False)
            logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


class TestLogging:
    def test_repeated_setup_does_not_stack(self, tmp_path):
        logger = logging.getLogger("routercam")
        before = len(logger.handlers)
        setup_logging("DEBUG")
        handlers = setup_logging("WARNING", log_file=tmp_path / "logs" / "cam.log")
        assert len(logger.handlers) == before + 2
        assert logger.level == logging.WARNING
        assert (tmp_path / "logs" / "cam.log").exists()
        for handler in handlers:
            logger.removeHandler(handler)
            logging.getLogger("py.warnings").removeHandler(handler)
            handler.close()
        logging.captureWarnings(False)
        logger.setLevel(logging.NOTSET)

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            setup_logging("LOUD")
