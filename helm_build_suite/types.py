from typing import Any, Dict, NewType

Context = Dict[str, Any]

StepType = NewType("StepType", str)
STEP_ALL = StepType("all")
