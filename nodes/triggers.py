"""Trigger node types: webhook, manual, cron and schedule."""

from converter.models import NodeCategory
from converter.registry import ParameterKind, ParameterSpec
from nodes.base import define_node

HTTP_METHODS = ("DELETE", "GET", "HEAD", "PATCH", "POST", "PUT")

WEBHOOK_BODY = r'''
    def build_app(self, callback):
        app = FastAPI()
        path = "/" + str(self.param("path", default="")).lstrip("/")
        method = str(self.param("http_method", default="POST")).upper()
        response_mode = self.param("response_mode", default="onReceived")

        async def receive(request: Request):
            raw = await request.body()
            item = {
                "body": await request.json() if raw else {},
                "headers": dict(request.headers),
                "query": dict(request.query_params),
            }
            result = callback([item])
            if response_mode == "onReceived":
                return {"message": "Workflow was started"}
            return result

        app.add_api_route(path, receive, methods=[method])
        return app

    def start(self, callback):
        host = os.environ.get("WEBHOOK_HOST", "127.0.0.1")
        port = int(os.environ.get("WEBHOOK_PORT", "8000"))
        self.logger.info("Listening for webhooks on %s:%s", host, port)
        uvicorn.run(self.build_app(callback), host=host, port=port)
'''

MANUAL_BODY = r'''
    def start(self, callback):
        return callback([{}])
'''

CRON_BODY = r'''
    def next_run(self, now=None):
        tz = ZoneInfo(self.param("timezone", default="UTC"))
        now = now or datetime.now(tz)
        return croniter(self.param("rule"), now).get_next(datetime)

    def start(self, callback):
        while True:
            fire_at = self.next_run()
            delay = (fire_at - datetime.now(fire_at.tzinfo)).total_seconds()
            self.logger.info("Next run at %s", fire_at.isoformat())
            time.sleep(max(delay, 0))
            callback([{"timestamp": fire_at.isoformat()}])
'''

SCHEDULE_BODY = r'''
    UNIT_SECONDS = {"seconds": 1, "minutes": 60, "hours": 3600, "days": 86400, "weeks": 604800}

    def intervals(self):
        rule = self.param("rule", default={}) or {}
        return rule.get("interval") or [{"field": "days", "daysInterval": 1}]

    def next_run(self, interval, now):
        if interval.get("field") == "cronExpression":
            return croniter(interval["expression"], now).get_next(datetime)
        field = interval.get("field", "days")
        amount = int(interval.get(f"{field}Interval", 1))
        return now + timedelta(seconds=amount * self.UNIT_SECONDS.get(field, 86400))

    def start(self, callback):
        tz = ZoneInfo(self.param("timezone", default="UTC"))
        now = datetime.now(tz)
        pending = [(self.next_run(interval, now), index) for index, interval in enumerate(self.intervals())]
        rules = self.intervals()
        while pending:
            pending.sort()
            fire_at, index = pending.pop(0)
            time.sleep(max((fire_at - datetime.now(tz)).total_seconds(), 0))
            callback([{"timestamp": fire_at.isoformat()}])
            pending.append((self.next_run(rules[index], fire_at), index))
'''

WEBHOOK = define_node(
    name="webhook",
    display_name="Webhook",
    category=NodeCategory.TRIGGER,
    class_name="WebhookTrigger",
    description="Starts the workflow when an HTTP request arrives.",
    body=WEBHOOK_BODY,
    imports=("", "import uvicorn", "from fastapi import FastAPI, Request"),
    parameters=(
        ParameterSpec("path", ParameterKind.STRING, default="webhook"),
        ParameterSpec("httpMethod", ParameterKind.OPTIONS, default="POST", options=HTTP_METHODS),
        ParameterSpec(
            "responseMode", ParameterKind.OPTIONS, default="onReceived",
            options=("onReceived", "lastNode", "responseNode"),
        ),
    ),
    dependencies=("fastapi", "uvicorn"),
)

MANUAL_TRIGGER = define_node(
    name="manualTrigger",
    display_name="Manual Trigger",
    category=NodeCategory.TRIGGER,
    class_name="ManualTrigger",
    description="Starts the workflow once with a single empty item.",
    body=MANUAL_BODY,
)

CRON = define_node(
    name="cron",
    display_name="Cron",
    category=NodeCategory.TRIGGER,
    class_name="CronTrigger",
    description="Starts the workflow on a cron schedule.",
    body=CRON_BODY,
    imports=("import time", "from datetime import datetime", "from zoneinfo import ZoneInfo", "", "from croniter import croniter"),
    parameters=(
        ParameterSpec("rule", ParameterKind.STRING, required=True, description="Cron expression"),
        ParameterSpec("timezone", ParameterKind.STRING, default="UTC"),
    ),
    dependencies=("croniter",),
)

SCHEDULE_TRIGGER = define_node(
    name="scheduleTrigger",
    display_name="Schedule Trigger",
    category=NodeCategory.TRIGGER,
    class_name="ScheduleTrigger",
    description="Starts the workflow at fixed intervals or cron times.",
    body=SCHEDULE_BODY,
    imports=(
        "import time",
        "from datetime import datetime, timedelta",
        "from zoneinfo import ZoneInfo",
        "",
        "from croniter import croniter",
    ),
    parameters=(
        ParameterSpec("rule", ParameterKind.OBJECT, default={"interval": [{"field": "days", "daysInterval": 1}]}),
        ParameterSpec("timezone", ParameterKind.STRING, default="UTC"),
    ),
    dependencies=("croniter",),
)

TRIGGER_NODES = (WEBHOOK, MANUAL_TRIGGER, CRON, SCHEDULE_TRIGGER)
