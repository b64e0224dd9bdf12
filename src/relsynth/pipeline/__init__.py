from relsynth.pipeline.runner import (
    GenerationResult,
    GenerationRunner,
    GenerationStatus,
    generate,
)
