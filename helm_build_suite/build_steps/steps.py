from helm_build_suite.types import StepType, STEP_ALL

STEP_VERIFY = StepType("verify")
STEP_INSTALL = StepType("install")
STEP_CREATE = StepType("create")
STEP_LINT = StepType("lint")
STEP_PACKAGE = StepType("package")
STEP_PUBLISH = StepType("publish")
ALL_STEPS = {
    STEP_ALL,
    STEP_VERIFY,
    STEP_INSTALL,
    STEP_CREATE,
    STEP_LINT,
    STEP_PACKAGE,
    STEP_PUBLISH,
}
