import factory

from airsafe_monitor.domain.models import AlertRecord, AlertType


class AlertRecordFactory(factory.Factory):
    class Meta:
        model = AlertRecord

    id = factory.Sequence(lambda n: f"alert-{n}")
    type = AlertType.WARNING
    title = "PM2.5 High"
    message = factory.LazyAttribute(lambda o: f"{o.parameter} over threshold ({o.value:.1f} μg/m³)")
    parameter = "PM2.5"
    value = 40.0
    threshold = 25.0
    timestamp = factory.Sequence(lambda n: 1_700_000_000.0 + n)
    acknowledged = False
