"""Job orchestrator: ties design objects, stock, tools and operations together.

The Job class is the top-level entry point for applications embedding the
CAM core.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional

from ..config.defaults import build_default_tool_library
from ..config.machine_profiles import MachineConfig, RouterModel, get_profile
from ..config.settings import AppSettings
from ..gcode.post_processor import (
    PostProcessor,
    PostProcessorConfig,
    ProgramBlock,
    get_post_processor,
)
from ..gcode.validate import SafetyCheckResult, perform_safety_checks
from .design import DesignObject
from .keepout import Keepout
from .operation import Operation
from .stock import Stock
from .tool import Tool, ToolLibrary
from .toolpath import GeneratedToolpath, generate_toolpath
from .units import Units

logger = logging.getLogger(__name__)


@dataclass
class Job:
    """A complete CAM job: design objects + stock + machine + operations."""

    name: str = "Untitled"
    objects: list[DesignObject] = field(default_factory=list)
    operations: list[Operation] = field(default_factory=list)
    tools: ToolLibrary = field(default_factory=build_default_tool_library)
    stock: Stock = field(default_factory=lambda: Stock(300.0, 300.0, 18.0))
    machine: MachineConfig = field(default_factory=lambda: get_profile(RouterModel.SHAPEOKO_4))
    keepouts: list[Keepout] = field(default_factory=list)
    safe_height: float = 5.0
    post_processor: str = "grbl"
    units: Units = Units.MM

    @classmethod
    def from_settings(cls, settings: AppSettings, **kwargs) -> "Job":
        """Job using the machine, dialect and units saved in *settings*.

        Keyword arguments override any field, as in the constructor.
        """
        defaults = dict(
            machine=settings.machine,
            post_processor=settings.default_post_processor,
            units=settings.units,
        )
        return cls(**{**defaults, **kwargs})

    def tool_for(self, operation: Operation) -> Tool:
        """Tool referenced by *operation*.

        Raises
        ------
        KeyError:
            If the tool is not in the job's library.
        """
        tool = self.tools.get(operation.tool_id)
        if tool is None:
            raise KeyError(
                f"Operation '{operation.name}' uses unknown tool {operation.tool_id!r}")
        return tool

    def _generate(self, operation: Operation) -> GeneratedToolpath:
        return generate_toolpath(
            operation,
            self.tool_for(operation),
            self.objects,
            self.stock.thickness,
            self.safe_height,
        )

    def compute_toolpaths(self, max_workers: int = 1) -> list[GeneratedToolpath]:
        """Generate a toolpath for every enabled operation, in operation order.

        Operations are independent, so with ``max_workers > 1`` they are
        generated on a thread pool.
        """
        enabled = [op for op in self.operations if op.enabled]
        for op in enabled:
            self.tool_for(op)

        if max_workers <= 1 or len(enabled) <= 1:
            toolpaths = [self._generate(op) for op in enabled]
        else:
            with ThreadPoolExecutor(max_workers=max_workers,
                                    thread_name_prefix="toolpath") as pool:
                toolpaths = list(pool.map(self._generate, enabled))

        logger.info("Job '%s': %d toolpaths, %d segments total", self.name,
                    len(toolpaths), sum(len(tp.segments) for tp in toolpaths))
        return toolpaths

    def validate(self, toolpaths: list[GeneratedToolpath]) -> dict[str, SafetyCheckResult]:
        """Safety-check each toolpath; results keyed by operation id."""
        by_id = {op.id: op for op in self.operations}
        results: dict[str, SafetyCheckResult] = {}
        for tp in toolpaths:
            op = by_id[tp.operation_id]
            results[op.id] = perform_safety_checks(
                tp, self.tool_for(op), self.stock, self.machine, self.keepouts)
            if not results[op.id].passed:
                logger.warning("Operation '%s' failed safety checks: %s", op.name,
                               ", ".join(e.code for e in results[op.id].blocking_errors))
        return results

    def to_gcode(
        self,
        toolpaths: list[GeneratedToolpath],
        config: Optional[PostProcessorConfig] = None,
    ) -> str:
        """One program for all non-empty *toolpaths*.

        Tool numbers follow the order tools are first used.  Without
        *config* the job's own dialect and units are used.
        """
        if config is None:
            config = get_post_processor(self.post_processor, units=self.units)
        by_id = {op.id: op for op in self.operations}
        numbers: dict[str, int] = {}
        blocks: list[ProgramBlock] = []
        for tp in toolpaths:
            if tp.is_empty:
                continue
            op = by_id[tp.operation_id]
            tool = self.tool_for(op)
            number = numbers.setdefault(tool.id, len(numbers) + 1)
            blocks.append(ProgramBlock(tp, tool, number, op.settings.spindle_speed,
                                       op.settings.coolant))
        return PostProcessor(config).generate_program(blocks, self.safe_height)
