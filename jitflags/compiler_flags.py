"""
JIT compiler flag table.

`build_compiler_specs` registers every compiler tuning flag with its kind,
default, constraint and dependency edges. Flags that only exist in some builds
(optimizing compiler, RTM-capable platforms) are registered only there, and
constraints that point at them are dropped with them.
"""
from __future__ import annotations

from typing import List, Optional

from .engine.intrinsics import IntrinsicCatalog, IntrinsicList, default_catalog
from .engine.platform import CompilerConfig, Platform, platform_for
from .engine.resolver import Resolver
from .engine.rules import (
    AtLeast,
    AtMost,
    BoundedRange,
    Chain,
    DigitPacked,
    MultipleOf,
    PairedToggle,
    PowerOfTwo,
    ResetToDefaultWhen,
    RuleContext,
)
from .engine.types import INT_MAX, ParamSpec

__all__ = ["build_compiler_specs", "compiler_resolver", "INVOCATION_COUNTER_SHIFT"]

INVOCATION_COUNTER_SHIFT = 1
BYTES_PER_LONG = 8
ARRAYCOPY_PREFETCH_LIMIT = 4031
RTM_TOTAL_COUNT_INCR_RATE_DEFAULT = 64


# ---- derived bounds --------------------------------------------------------


def _compiler_count_max(ctx: RuleContext) -> Optional[int]:
    return None if ctx.compiler.has_compilers else 0


def _compiler_count_min(ctx: RuleContext) -> int:
    return ctx.compiler.min_compiler_threads()


def _osr_max(ctx: RuleContext) -> int:
    profiling = bool(ctx.get("ProfileInterpreter"))
    bound = INT_MAX
    if not profiling:
        bound >>= INVOCATION_COUNTER_SHIFT
    bound *= 100
    threshold = ctx.get("CompileThreshold")
    if threshold != 0:
        bound //= threshold
    if profiling:
        bound += ctx.get("InterpreterProfilePercentage")
    return bound


def _osr_min(ctx: RuleContext) -> int:
    return ctx.get("InterpreterProfilePercentage") if ctx.get("ProfileInterpreter") else 0


def _osr_lo_label(ctx: RuleContext) -> Optional[str]:
    return "InterpreterProfilePercentage" if ctx.get("ProfileInterpreter") else None


def _fudge_min(ctx: RuleContext) -> int:
    return ctx.get("MaxNodeLimit") * 2 // 100


def _fudge_max(ctx: RuleContext) -> int:
    return ctx.get("MaxNodeLimit") * 40 // 100


def _prefetch_style_is_3(ctx: RuleContext) -> bool:
    return ctx.get("AllocatePrefetchStyle") == 3


# ---- table -----------------------------------------------------------------


def build_compiler_specs(
    platform: Platform,
    compiler: CompilerConfig,
    catalog: Optional[IntrinsicCatalog] = None,
) -> List[ParamSpec]:
    catalog = catalog if catalog is not None else default_catalog()
    c2 = platform.has_c2
    specs: List[ParamSpec] = [
        ParamSpec(
            "CICompilerCount", "intx", 2,
            BoundedRange(_compiler_count_min, _compiler_count_max),
            doc="number of compiler threads",
        ),
        ParamSpec(
            "AllocatePrefetchStyle", "intx", 1, BoundedRange(0, 3),
            doc="prefetch instruction style used after allocation",
        ),
        ParamSpec(
            "AllocatePrefetchDistance", "intx", 192, BoundedRange(0, 512),
            doc="distance in bytes to prefetch ahead of allocation",
        ),
        ParamSpec(
            "AllocatePrefetchStepSize", "intx", 16,
            MultipleOf(
                platform.word_size,
                when=_prefetch_style_is_3,
                reads=("AllocatePrefetchStyle",),
                what="word size",
            ),
            depends_on=("AllocatePrefetchStyle",),
            doc="step size in bytes between sequential prefetches",
        ),
        ParamSpec(
            "AllocatePrefetchInstr", "intx", 0,
            BoundedRange(0, platform.prefetch_instr_max),
            doc="prefetch instruction variant",
        ),
        ParamSpec(
            "CompileThreshold", "intx", 10000, BoundedRange(0, INT_MAX >> INVOCATION_COUNTER_SHIFT),
            doc="invocations before compilation",
        ),
        ParamSpec("ProfileInterpreter", "bool", True, doc="profile in the interpreter"),
        ParamSpec(
            "InterpreterProfilePercentage", "intx", 33, BoundedRange(0, 100),
            doc="share of the compile threshold spent profiling",
        ),
        ParamSpec(
            "OnStackReplacePercentage", "intx", 140,
            BoundedRange(
                _osr_min,
                _osr_max,
                reads=("CompileThreshold", "ProfileInterpreter", "InterpreterProfilePercentage"),
                lo_label=_osr_lo_label,
            ),
            depends_on=("CompileThreshold", "ProfileInterpreter", "InterpreterProfilePercentage"),
            doc="percentage of the compile threshold that triggers on-stack replacement",
        ),
        ParamSpec(
            "CodeEntryAlignment", "intx", 32,
            PowerOfTwo(minimum=16, repairable=False),
            doc="code entry alignment (development)",
        ),
    ]

    if c2:
        specs.append(
            ParamSpec(
                "OptoLoopAlignment", "intx", 16,
                Chain(
                    PowerOfTwo(),
                    MultipleOf(platform.nop_size, what="NOP size"),
                    AtMost("CodeEntryAlignment"),
                ),
                depends_on=("CodeEntryAlignment",),
                doc="inner loop alignment",
            )
        )

    segment_rules = [
        AtLeast("CodeEntryAlignment", repairable=False, why="to align entry points"),
        BoundedRange(8, None, repairable=False, note="to align constants"),
    ]
    segment_deps = ["CodeEntryAlignment"]
    if c2:
        segment_rules.append(
            AtLeast("OptoLoopAlignment", repairable=False, why="to align inner loops")
        )
        segment_deps.append("OptoLoopAlignment")
    specs.append(
        ParamSpec(
            "CodeCacheSegmentSize", "uintx", 64,
            Chain(*segment_rules),
            depends_on=tuple(segment_deps),
            doc="code cache allocation unit in bytes (development)",
        )
    )

    if c2:
        specs.append(
            ParamSpec(
                "InteriorEntryAlignment", "intx", 16,
                Chain(
                    AtMost("CodeEntryAlignment"),
                    PowerOfTwo(minimum=platform.interior_entry_min_alignment),
                ),
                depends_on=("CodeEntryAlignment",),
                doc="interior entry alignment",
            )
        )

    specs += [
        ParamSpec(
            "ArraycopySrcPrefetchDistance", "uintx", 0,
            BoundedRange(0, ARRAYCOPY_PREFETCH_LIMIT, repairable=False),
            doc="arraycopy source prefetch distance (development)",
        ),
        ParamSpec(
            "ArraycopyDstPrefetchDistance", "uintx", 0,
            BoundedRange(0, ARRAYCOPY_PREFETCH_LIMIT, repairable=False),
            doc="arraycopy destination prefetch distance (development)",
        ),
        ParamSpec(
            "AVX3Threshold", "int", 4096,
            PowerOfTwo(allow_zero=True, repairable=False),
            doc="minimum array size for 512-bit vector copies (development)",
        ),
        ParamSpec(
            "TypeProfileLevel", "uint", 111, DigitPacked((2, 2, 2)),
            doc="type profiling of arguments, return values and parameters (one digit each)",
        ),
        ParamSpec(
            "VerifyIterativeGVN", "uint", 0, DigitPacked((1, 1)),
            doc="iterative GVN verification switches (one digit each)",
        ),
        ParamSpec(
            "InitArrayShortSize", "intx", 64, MultipleOf(BYTES_PER_LONG, what="bytes per long"),
            doc="array size in bytes below which zeroing is unrolled",
        ),
    ]

    if c2:
        specs += [
            ParamSpec(
                "MaxNodeLimit", "intx", 80000, BoundedRange(1000, INT_MAX // 3),
                doc="maximum number of ideal graph nodes",
            ),
            ParamSpec(
                "NodeLimitFudgeFactor", "intx", 2000,
                BoundedRange(
                    _fudge_min, _fudge_max,
                    reads=("MaxNodeLimit",),
                    note="(2% to 40% of MaxNodeLimit)",
                ),
                depends_on=("MaxNodeLimit",),
                doc="node budget slack",
            ),
        ]

    if platform.supports_rtm:
        specs += [
            ParamSpec("UseRTMLocking", "bool", False, doc="use restricted transactional memory for locking"),
            ParamSpec(
                "RTMTotalCountIncrRate", "int", RTM_TOTAL_COUNT_INCR_RATE_DEFAULT,
                ResetToDefaultWhen("UseRTMLocking", RTM_TOTAL_COUNT_INCR_RATE_DEFAULT),
                depends_on=("UseRTMLocking",),
                doc="sampling rate of RTM total count increments",
            ),
        ]

    if c2:
        specs += [
            ParamSpec("UseCountedLoopSafepoints", "bool", False, doc="keep safepoints in counted loops"),
            ParamSpec(
                "LoopStripMiningIter", "uintx", 0,
                PairedToggle("UseCountedLoopSafepoints"),
                depends_on=("UseCountedLoopSafepoints",),
                governs=("UseCountedLoopSafepoints",),
                doc="iterations between safepoints in strip-mined loops",
            ),
        ]

    specs += [
        ParamSpec(
            "DisableIntrinsic", "ccstrlist", "", IntrinsicList(catalog, markers=False),
            doc="intrinsics to disable, comma separated",
        ),
        ParamSpec(
            "ControlIntrinsic", "ccstrlist", "", IntrinsicList(catalog, markers=True),
            doc="intrinsics to enable (+) or disable (-), comma separated",
        ),
    ]
    return specs


def compiler_resolver(
    platform: Optional[Platform] = None,
    compiler: Optional[CompilerConfig] = None,
    catalog: Optional[IntrinsicCatalog] = None,
) -> Resolver:
    """Resolver over the full compiler flag table (defaults: x86_64, tiered)."""
    platform = platform if platform is not None else platform_for("x86_64")
    compiler = compiler if compiler is not None else CompilerConfig()
    return Resolver(
        build_compiler_specs(platform, compiler, catalog),
        platform=platform,
        compiler=compiler,
    )
