"""Default feeds, speeds, and tool definitions.

These are conservative starting points for wood and plastics; users should
adjust to their specific tooling and material.
"""

from ..core.tool import Tool, ToolType, ToolLibrary


def build_default_tool_library() -> ToolLibrary:
    """Return an in-memory ToolLibrary with common router bits."""
    lib = ToolLibrary(path=None, persist=False)

    tools = [
        Tool(
            id="flat-6mm",
            name="6mm Flat End Mill",
            tool_type=ToolType.FLAT_END_MILL,
            diameter=6.0,
            flute_count=2,
            flute_length=22.0,
            overall_length=50.0,
            default_feed_rate=1500.0,
            default_plunge_rate=500.0,
            default_spindle_speed=18000,
        ),
        Tool(
            id="flat-3mm",
            name="3mm Flat End Mill",
            tool_type=ToolType.FLAT_END_MILL,
            diameter=3.0,
            flute_count=2,
            flute_length=12.0,
            overall_length=38.0,
            default_feed_rate=1000.0,
            default_plunge_rate=300.0,
            default_spindle_speed=20000,
        ),
        Tool(
            id="vbit-60",
            name="60° V-Bit",
            tool_type=ToolType.V_BIT,
            diameter=6.0,
            flute_count=2,
            flute_length=10.0,
            overall_length=40.0,
            tip_angle=60.0,
            default_feed_rate=1200.0,
            default_plunge_rate=400.0,
            default_spindle_speed=18000,
        ),
        Tool(
            id="vbit-90",
            name="90° V-Bit",
            tool_type=ToolType.V_BIT,
            diameter=12.0,
            flute_count=2,
            flute_length=15.0,
            overall_length=45.0,
            tip_angle=90.0,
            default_feed_rate=1200.0,
            default_plunge_rate=400.0,
            default_spindle_speed=16000,
        ),
        Tool(
            id="ball-6mm",
            name="6mm Ball End Mill",
            tool_type=ToolType.BALL_END_MILL,
            diameter=6.0,
            flute_count=2,
            flute_length=22.0,
            overall_length=50.0,
            default_feed_rate=1200.0,
            default_plunge_rate=400.0,
            default_spindle_speed=18000,
        ),
        Tool(
            id="drill-5mm",
            name="5mm Brad Point Drill",
            tool_type=ToolType.DRILL,
            diameter=5.0,
            flute_count=2,
            flute_length=50.0,
            overall_length=85.0,
            tip_angle=118.0,
            default_feed_rate=600.0,
            default_plunge_rate=300.0,
            default_spindle_speed=12000,
        ),
    ]

    for t in tools:
        lib.add(t)

    return lib
