"""Exception hierarchy for the ridership change pipeline."""


class PipelineError(Exception):
    """Base class for failures that abort a pipeline run."""


class ConfigError(PipelineError):
    """The pipeline configuration file is missing keys or holds invalid values."""


class SchemaError(PipelineError):
    """An input table is missing required columns or holds malformed values."""


class DataQualityError(PipelineError):
    """A cleaning step would discard more rows than its configured ceiling.

    A large removal fraction points at an upstream logic bug (wrong partitioning,
    wrong sort order) rather than ordinary sensor noise, so the run stops.
    """

    def __init__(self, step: str, removed: int, total: int, ceiling: float):
        self.step = step
        self.removed = removed
        self.total = total
        self.ceiling = ceiling
        fraction = removed / total if total else 0.0
        super().__init__(
            f"{step} would remove {removed:,} of {total:,} rows "
            f"({fraction:.2%}), above the allowed ceiling of {ceiling:.2%}"
        )


class AmbiguousMatchError(PipelineError):
    """A turnstile-side station name matches several station-side names."""

    def __init__(self, ambiguous: dict):
        self.ambiguous = ambiguous
        details = "; ".join(
            f"{name!r} -> {', '.join(repr(c) for c in candidates)}"
            for name, candidates in sorted(ambiguous.items())
        )
        super().__init__(
            f"{len(ambiguous)} turnstile station name(s) match several stations; "
            f"add entries to the override table to resolve them: {details}"
        )
