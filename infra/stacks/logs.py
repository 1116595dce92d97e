"""CloudWatch Logs driver for containers, with retention mapped from days."""

from aws_cdk import aws_ecs as ecs, aws_logs as logs

_RETENTION = {
    1: logs.RetentionDays.ONE_DAY,
    3: logs.RetentionDays.THREE_DAYS,
    5: logs.RetentionDays.FIVE_DAYS,
    7: logs.RetentionDays.ONE_WEEK,
    14: logs.RetentionDays.TWO_WEEKS,
    30: logs.RetentionDays.ONE_MONTH,
    60: logs.RetentionDays.TWO_MONTHS,
    90: logs.RetentionDays.THREE_MONTHS,
    180: logs.RetentionDays.SIX_MONTHS,
    365: logs.RetentionDays.ONE_YEAR,
}


def container_logs(stream_prefix: str, retention_days: int) -> ecs.LogDriver:
    """CloudWatch Logs driver for a container, one stream per task."""
    return ecs.LogDrivers.aws_logs(
        stream_prefix=stream_prefix,
        log_retention=_RETENTION[retention_days],
    )
