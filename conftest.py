import hypothesis

# ConvergeTestCase's property test is inherited by several test classes, which
# Hypothesis otherwise rejects via the differing_executors health check.
hypothesis.settings.register_profile(
    "default_suppressed",
    suppress_health_check=[hypothesis.HealthCheck.differing_executors],
)
hypothesis.settings.load_profile("default_suppressed")
