"""Service integration node types: Slack, Telegram, Postgres and Redis."""

from typing import Any, Mapping, Optional

from converter.models import NodeCategory
from converter.registry import CredentialSpec, ParameterKind, ParameterSpec
from nodes.base import define_node

SLACK_BODY = r'''
    def client(self):
{% if "slackApi" in credential_slots %}
        token = self.get_slack_api_credential()["accessToken"]
{% elif "slackOAuth2Api" in credential_slots %}
        token = self.get_slack_oauth2_credential()["accessToken"]
{% else %}
        token = os.environ.get("SLACK_ACCESS_TOKEN")
{% endif %}
        return WebClient(token=token)

    def execute(self, items, context):
        client = self.client()
        resource = self.param("resource")
        operation = self.param("operation")
        results = []
        for item in items or [{}]:
            channel = self.param("channel", item, context)
            text = self.param("text", item, context)
            if (resource, operation) == ("message", "post"):
                extra = self.param("other_options", item, context, default={})
                response = client.chat_postMessage(channel=channel, text=text, **extra)
            elif (resource, operation) == ("message", "update"):
                response = client.chat_update(channel=channel, ts=self.param("ts", item, context), text=text)
            elif (resource, operation) == ("channel", "create"):
                response = client.conversations_create(name=channel)
            elif (resource, operation) == ("channel", "history"):
                response = client.conversations_history(channel=channel)
            else:
                raise NotImplementedError(f"Slack {resource}.{operation} is not supported")
            results.append(response.data)
        return results
'''

TELEGRAM_BODY = r'''
    API_URL = "https://api.telegram.org/bot{token}/{method}"
    CONTENT_FIELDS = {"sendMessage": "text", "sendPhoto": "photo", "sendDocument": "document"}

    def call(self, method, payload):
{% if "telegramApi" in credential_slots %}
        token = self.get_telegram_api_credential()["accessToken"]
{% else %}
        token = os.environ.get("TELEGRAM_BOT_TOKEN", "")
{% endif %}
        response = httpx.post(self.API_URL.format(token=token, method=method), json=payload, timeout=30)
        response.raise_for_status()
        return response.json().get("result")

    def execute(self, items, context):
        operation = self.param("operation", default="sendMessage")
        field = self.CONTENT_FIELDS.get(operation)
        if field is None:
            raise NotImplementedError(f"Telegram operation {operation} is not supported")
        results = []
        for item in items or [{}]:
            payload = dict(self.param("additional_fields", item, context, default={}))
            payload["chat_id"] = self.param("chat_id", item, context)
            payload[field] = self.param("text" if field == "text" else "file", item, context)
            results.append(self.call(operation, payload))
        return results
'''

POSTGRES_BODY = r'''
    def connect(self):
{% if "postgres" in credential_slots %}
        credential = self.get_postgres_credential()
{% else %}
        credential = {name: os.environ.get(f"POSTGRES_{name.upper()}") for name in ("host", "port", "database", "user", "password")}
{% endif %}
        return psycopg.connect(
            host=credential["host"] or "localhost",
            port=int(credential["port"] or 5432),
            dbname=credential["database"],
            user=credential["user"],
            password=credential["password"],
        )

    def execute(self, items, context):
        operation = self.param("operation", default="executeQuery")
        results = []
        with self.connect() as connection:
            with connection.cursor(row_factory=dict_row) as cursor:
                for item in items or [{}]:
                    statement, values = self.statement(operation, item, context)
                    cursor.execute(statement, values)
                    if cursor.description:
                        results.extend(cursor.fetchall())
        return results

    def statement(self, operation, item, context):
        if operation == "executeQuery":
            return self.param("query", item, context), None

        table = sql.Identifier(self.param("schema", default="public"), self.param("table"))
        columns = [name.strip() for name in str(self.param("columns", default="")).split(",") if name.strip()]
        names = columns or list(item)
        if operation == "insert":
            return sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING *").format(
                table,
                sql.SQL(", ").join(sql.Identifier(name) for name in names),
                sql.SQL(", ").join(sql.Placeholder() for _ in names),
            ), [item.get(name) for name in names]
        if operation == "update":
            key = self.param("update_key", default="id")
            assigned = [name for name in names if name != key]
            return sql.SQL("UPDATE {} SET {} WHERE {} = %s RETURNING *").format(
                table,
                sql.SQL(", ").join(sql.SQL("{} = %s").format(sql.Identifier(name)) for name in assigned),
                sql.Identifier(key),
            ), [item.get(name) for name in assigned] + [item.get(key)]
        raise NotImplementedError(f"Postgres operation {operation} is not supported")
'''

REDIS_BODY = r'''
    def client(self):
{% if "redis" in credential_slots %}
        credential = self.get_redis_credential()
{% else %}
        credential = {name: os.environ.get(f"REDIS_{name.upper()}") for name in ("host", "port", "password", "database")}
{% endif %}
        return redis.Redis(
            host=credential["host"] or "localhost",
            port=int(credential["port"] or 6379),
            password=credential["password"] or None,
            db=int(credential["database"] or 0),
            decode_responses=True,
        )

    def execute(self, items, context):
        client = self.client()
        operation = self.param("operation", default="get")
        results = []
        for item in items or [{}]:
            key = self.param("key", item, context)
            output = dict(item)
            if operation == "get":
                output[self.param("property_name", item, context, default="value")] = client.get(key)
            elif operation == "set":
                ttl = self.param("ttl", item, context) if self.param("expire", item, context) else None
                client.set(key, self.param("value", item, context), ex=int(ttl) if ttl else None)
            elif operation == "delete":
                client.delete(key)
            elif operation == "incr":
                output[key] = client.incr(key)
            elif operation == "keys":
                output["keys"] = client.keys(key or "*")
            elif operation == "publish":
                client.publish(self.param("channel", item, context), self.param("message_data", item, context))
            else:
                raise NotImplementedError(f"Redis operation {operation} is not supported")
            results.append(output)
        return results
'''


def check_postgres_operation(parameters: Mapping[str, Any]) -> Optional[str]:
    operation = parameters.get("operation", "executeQuery")
    if operation == "executeQuery" and not parameters.get("query"):
        return "parameter 'query' is required for executeQuery"
    if operation in ("insert", "update") and not parameters.get("table"):
        return f"parameter 'table' is required for {operation}"
    return None


def check_redis_key(parameters: Mapping[str, Any]) -> Optional[str]:
    operation = parameters.get("operation", "get")
    if operation in ("get", "set", "delete", "incr") and not parameters.get("key"):
        return f"parameter 'key' is required for {operation}"
    return None


SLACK = define_node(
    name="slack",
    display_name="Slack",
    category=NodeCategory.ACTION,
    class_name="SlackNode",
    description="Posts and reads Slack messages and channels.",
    body=SLACK_BODY,
    imports=("", "from slack_sdk import WebClient"),
    parameters=(
        ParameterSpec("resource", ParameterKind.STRING, required=True),
        ParameterSpec("operation", ParameterKind.STRING, required=True),
        ParameterSpec("channel", ParameterKind.STRING),
        ParameterSpec("text", ParameterKind.STRING),
        ParameterSpec("ts", ParameterKind.STRING),
        ParameterSpec("otherOptions", ParameterKind.OBJECT),
    ),
    dependencies=("slack-sdk",),
    credentials=(
        CredentialSpec("slackApi", "get_slack_api_credential", (("accessToken", "SLACK_ACCESS_TOKEN"),)),
        CredentialSpec("slackOAuth2Api", "get_slack_oauth2_credential", (("accessToken", "SLACK_OAUTH_ACCESS_TOKEN"),)),
    ),
)

TELEGRAM = define_node(
    name="telegram",
    display_name="Telegram",
    category=NodeCategory.ACTION,
    class_name="TelegramNode",
    description="Sends messages and files through the Telegram Bot API.",
    body=TELEGRAM_BODY,
    imports=("", "import httpx"),
    parameters=(
        ParameterSpec("resource", ParameterKind.OPTIONS, default="message", options=("message",)),
        ParameterSpec(
            "operation", ParameterKind.OPTIONS, default="sendMessage",
            options=("sendMessage", "sendPhoto", "sendDocument"),
        ),
        ParameterSpec("chatId", ParameterKind.STRING, required=True),
        ParameterSpec("text", ParameterKind.STRING),
        ParameterSpec("file", ParameterKind.STRING),
        ParameterSpec("additionalFields", ParameterKind.OBJECT),
    ),
    dependencies=("httpx",),
    credentials=(
        CredentialSpec("telegramApi", "get_telegram_api_credential", (("accessToken", "TELEGRAM_BOT_TOKEN"),)),
    ),
)

POSTGRES = define_node(
    name="postgres",
    display_name="Postgres",
    category=NodeCategory.ACTION,
    class_name="PostgresNode",
    description="Runs queries and writes rows in PostgreSQL.",
    body=POSTGRES_BODY,
    imports=("", "import psycopg", "from psycopg import sql", "from psycopg.rows import dict_row"),
    parameters=(
        ParameterSpec(
            "operation", ParameterKind.OPTIONS, default="executeQuery",
            options=("executeQuery", "insert", "update"),
        ),
        ParameterSpec("query", ParameterKind.STRING),
        ParameterSpec("schema", ParameterKind.STRING, default="public"),
        ParameterSpec("table", ParameterKind.STRING),
        ParameterSpec("columns", ParameterKind.STRING),
        ParameterSpec("updateKey", ParameterKind.STRING),
    ),
    dependencies=("psycopg",),
    credentials=(
        CredentialSpec(
            "postgres", "get_postgres_credential",
            (
                ("host", "POSTGRES_HOST"),
                ("port", "POSTGRES_PORT"),
                ("database", "POSTGRES_DATABASE"),
                ("user", "POSTGRES_USER"),
                ("password", "POSTGRES_PASSWORD"),
            ),
        ),
    ),
    checks=(check_postgres_operation,),
)

REDIS = define_node(
    name="redis",
    display_name="Redis",
    category=NodeCategory.ACTION,
    class_name="RedisNode",
    description="Reads and writes keys and publishes messages in Redis.",
    body=REDIS_BODY,
    imports=("", "import redis"),
    parameters=(
        ParameterSpec(
            "operation", ParameterKind.OPTIONS, default="get",
            options=("delete", "get", "incr", "keys", "publish", "set"),
        ),
        ParameterSpec("key", ParameterKind.STRING),
        ParameterSpec("value", ParameterKind.STRING),
        ParameterSpec("propertyName", ParameterKind.STRING),
        ParameterSpec("expire", ParameterKind.BOOLEAN),
        ParameterSpec("ttl", ParameterKind.NUMBER),
        ParameterSpec("channel", ParameterKind.STRING),
        ParameterSpec("messageData", ParameterKind.STRING),
    ),
    dependencies=("redis",),
    credentials=(
        CredentialSpec(
            "redis", "get_redis_credential",
            (
                ("host", "REDIS_HOST"),
                ("port", "REDIS_PORT"),
                ("password", "REDIS_PASSWORD"),
                ("database", "REDIS_DATABASE"),
            ),
        ),
    ),
    checks=(check_redis_key,),
)

SERVICE_NODES = (SLACK, TELEGRAM, POSTGRES, REDIS)
