"""Core action node types that need no external service."""

from converter.models import NodeCategory
from converter.registry import CredentialSpec, ParameterKind, ParameterSpec
from nodes.base import define_node, require_one_of

HTTP_CREDENTIALS = (
    CredentialSpec(
        "httpBasicAuth", "get_http_basic_auth_credential",
        (("user", "HTTP_BASIC_USERNAME"), ("password", "HTTP_BASIC_PASSWORD")),
    ),
    CredentialSpec(
        "httpHeaderAuth", "get_http_header_auth_credential",
        (("name", "HTTP_HEADER_AUTH_NAME"), ("value", "HTTP_HEADER_AUTH_VALUE")),
    ),
    CredentialSpec(
        "httpQueryAuth", "get_http_query_auth_credential",
        (("name", "HTTP_QUERY_AUTH_NAME"), ("value", "HTTP_QUERY_AUTH_VALUE")),
    ),
    CredentialSpec(
        "oAuth2Api", "get_oauth2_api_credential",
        (("accessToken", "OAUTH2_ACCESS_TOKEN"),),
    ),
)

HTTP_REQUEST_BODY = r'''
    def execute(self, items, context):
        timeout = float(self.param("timeout", default=30000)) / 1000
        results = []
        with httpx.Client(timeout=timeout) as client:
            for item in items or [{}]:
                response = client.request(**self.build_request(item, context))
                response.raise_for_status()
                try:
                    results.append(response.json())
                except ValueError:
                    results.append({"data": response.text, "statusCode": response.status_code})
        return results

    def build_request(self, item, context):
        headers = self._pairs(self.param("headers", item, context, default={}))
        params = self._pairs(self.param("query_parameters", item, context, default={}))
        request = {
            "method": str(self.param("method", item, context, default="GET")).upper(),
            "url": self.param("url", item, context),
            "headers": headers,
            "params": params,
        }
{% if "httpBasicAuth" in credential_slots %}
        basic = self.get_http_basic_auth_credential()
        request["auth"] = (basic["user"] or "", basic["password"] or "")
{% endif %}
{% if "httpHeaderAuth" in credential_slots %}
        header = self.get_http_header_auth_credential()
        headers[header["name"]] = header["value"]
{% endif %}
{% if "httpQueryAuth" in credential_slots %}
        query = self.get_http_query_auth_credential()
        params[query["name"]] = query["value"]
{% endif %}
{% if "oAuth2Api" in credential_slots %}
        headers["Authorization"] = "Bearer " + (self.get_oauth2_api_credential()["accessToken"] or "")
{% endif %}
        body = self.param("body", item, context)
        if isinstance(body, (dict, list)):
            request["json"] = body
        elif body is not None:
            request["content"] = str(body)
        return request

    @staticmethod
    def _pairs(value):
        # n8n stores key/value lists as {"parameters": [{"name": ..., "value": ...}]}
        if isinstance(value, dict) and isinstance(value.get("parameters"), list):
            return {entry["name"]: entry.get("value") for entry in value["parameters"] if entry.get("name")}
        return dict(value or {})
'''

SET_BODY = r'''
    def collect_assignments(self, item, context):
        pairs = []
        for operation in self.param("operations", item, context, default=[]):
            pairs.append((operation.get("name"), operation.get("value")))
        for entries in (self.param("values", item, context, default={})).values():
            for entry in entries or []:
                pairs.append((entry.get("name"), entry.get("value")))
        for entry in self.param("assignments", item, context, default={}).get("assignments", []):
            pairs.append((entry.get("name"), entry.get("value")))
        return [(name, value) for name, value in pairs if name]

    def execute(self, items, context):
        options = self.param("options", default={})
        dot_notation = options.get("dotNotation", True)
        keep_only_set = options.get("keepOnlySet", False) or self.param("keep_only_set", default=False)
        results = []
        for item in items:
            output = {} if keep_only_set else copy.deepcopy(item)
            for name, value in self.collect_assignments(item, context):
                if dot_notation:
                    self._set_path(output, name, value)
                else:
                    output[name] = value
            results.append(output)
        return results

    @staticmethod
    def _set_path(target, path, value):
        keys = str(path).split(".")
        for key in keys[:-1]:
            if not isinstance(target.get(key), dict):
                target[key] = {}
            target = target[key]
        target[keys[-1]] = value
'''

CODE_BODY = r'''
    def run_code(self, items, item, context):
{% if parameters.get("pythonCode") %}
        _input = items
        _json = item
{{ parameters["pythonCode"] | string | indent(8, first=True) }}
{% else %}
        raise NotImplementedError(
            "JavaScript code must be ported to Python by hand; the source is kept in self.js_code"
        )
{% endif %}

    def execute(self, items, context):
        if self.param("mode", default="runOnceForAllItems") == "runOnceForEachItem":
            results = []
            for item in items:
                output = self.run_code(items, item, context)
                results.append(item if output is None else output)
            return results
        output = self.run_code(items, None, context)
        return items if output is None else output
'''

IF_BODY = r'''
    OPERATIONS = {
        "equal": lambda left, right: left == right,
        "equals": lambda left, right: left == right,
        "notEqual": lambda left, right: left != right,
        "notEquals": lambda left, right: left != right,
        "contains": lambda left, right: str(right) in str(left),
        "notContains": lambda left, right: str(right) not in str(left),
        "startsWith": lambda left, right: str(left).startswith(str(right)),
        "endsWith": lambda left, right: str(left).endswith(str(right)),
        "regex": lambda left, right: re.search(str(right), str(left)) is not None,
        "larger": lambda left, right: float(left) > float(right),
        "gt": lambda left, right: float(left) > float(right),
        "largerEqual": lambda left, right: float(left) >= float(right),
        "gte": lambda left, right: float(left) >= float(right),
        "smaller": lambda left, right: float(left) < float(right),
        "lt": lambda left, right: float(left) < float(right),
        "smallerEqual": lambda left, right: float(left) <= float(right),
        "lte": lambda left, right: float(left) <= float(right),
        "isEmpty": lambda left, right: left in (None, "", [], {}),
        "empty": lambda left, right: left in (None, "", [], {}),
        "isNotEmpty": lambda left, right: left not in (None, "", [], {}),
        "notEmpty": lambda left, right: left not in (None, "", [], {}),
        "true": lambda left, right: left is True,
        "false": lambda left, right: left is False,
    }

    def checks(self, item, context):
        conditions = self.param("conditions", item, context, default={})
        if isinstance(conditions, dict) and isinstance(conditions.get("conditions"), list):
            combine = "any" if conditions.get("combinator") == "or" else "all"
            return [
                (entry.get("leftValue"), (entry.get("operator") or {}).get("operation", "equals"), entry.get("rightValue"))
                for entry in conditions["conditions"]
            ], combine

        groups = conditions.values() if isinstance(conditions, dict) else [conditions]
        checks = [
            (entry.get("value1"), entry.get("operation", "equal"), entry.get("value2"))
            for group in groups
            for entry in group or []
        ]
        return checks, self.param("combine_operation", default="all")

    def matches(self, item, context):
        checks, combine = self.checks(item, context)
        outcomes = []
        for left, operation, right in checks:
            compare = self.OPERATIONS.get(operation)
            if compare is None:
                raise ValueError(f"Unsupported condition operation: {operation}")
            try:
                outcomes.append(bool(compare(left, right)))
            except (TypeError, ValueError):
                outcomes.append(False)
        if not outcomes:
            return False
        return any(outcomes) if combine == "any" else all(outcomes)

    def execute(self, items, context):
        branches = {"true": [], "false": []}
        for item in items:
            branches["true" if self.matches(item, context) else "false"].append(item)
        return branches
'''

MERGE_BODY = r'''
    def merge(self, inputs):
        mode = self.param("mode", default="append")
        first = inputs[0] if inputs else []
        second = inputs[1] if len(inputs) > 1 else []

        if mode in ("append", "wait"):
            return [item for branch in inputs for item in branch]
        if mode in ("mergeByIndex", "combine"):
            return [dict(left, **right) for left, right in zip(first, second)]
        if mode == "mergeByKey":
            fields = self.param("merge_by_fields", default={})
            if isinstance(fields, dict):
                fields = fields.get("values", [])
            merged = []
            for left in first:
                for right in second:
                    if all(left.get(field.get("field1")) == right.get(field.get("field2")) for field in fields):
                        merged.append(dict(left, **right))
                        break
            return merged
        if mode in ("passThrough", "chooseBranch"):
            return first
        raise ValueError(f"Unsupported merge mode: {mode}")

    def execute(self, items, context):
        return self.merge(context.get("inputs") or [items])
'''

NO_OP_BODY = r'''
    def execute(self, items, context):
        return items
'''

WAIT_BODY = r'''
    UNIT_SECONDS = {"seconds": 1, "minutes": 60, "hours": 3600, "days": 86400}

    def delay(self, now=None):
        resume = self.param("resume", default="timeInterval")
        if resume == "timeInterval":
            amount = float(self.param("amount", default=1))
            return amount * self.UNIT_SECONDS[self.param("unit", default="seconds")]
        if resume == "specificTime":
            until = datetime.fromisoformat(str(self.param("date_time")))
            now = now or datetime.now(until.tzinfo)
            return max((until - now).total_seconds(), 0)
        raise NotImplementedError(f"Wait mode {resume} needs an external resume hook")

    def execute(self, items, context):
        seconds = self.delay()
        self.logger.info("Waiting %.1f seconds", seconds)
        time.sleep(seconds)
        return items
'''

HTTP_REQUEST = define_node(
    name="httpRequest",
    display_name="HTTP Request",
    category=NodeCategory.ACTION,
    class_name="HttpRequestNode",
    description="Makes an HTTP request and returns the response data.",
    body=HTTP_REQUEST_BODY,
    imports=("", "import httpx"),
    parameters=(
        ParameterSpec("url", ParameterKind.URL, required=True),
        ParameterSpec(
            "method", ParameterKind.OPTIONS, default="GET",
            options=("DELETE", "GET", "HEAD", "OPTIONS", "PATCH", "POST", "PUT"),
        ),
        ParameterSpec("headers", ParameterKind.OBJECT, default={}),
        ParameterSpec("queryParameters", ParameterKind.OBJECT),
        ParameterSpec("body", ParameterKind.ANY),
        ParameterSpec("timeout", ParameterKind.NUMBER, default=30000, description="Milliseconds"),
    ),
    dependencies=("httpx",),
    credentials=HTTP_CREDENTIALS,
)

SET = define_node(
    name="set",
    display_name="Set",
    category=NodeCategory.ACTION,
    class_name="SetNode",
    description="Sets fields on every item.",
    body=SET_BODY,
    imports=("import copy",),
    parameters=(
        ParameterSpec("operations", ParameterKind.ARRAY),
        ParameterSpec("values", ParameterKind.OBJECT),
        ParameterSpec("assignments", ParameterKind.OBJECT),
        ParameterSpec("keepOnlySet", ParameterKind.BOOLEAN),
        ParameterSpec("options", ParameterKind.OBJECT, default={"dotNotation": True, "keepOnlySet": False}),
    ),
    checks=(require_one_of("operations", "values", "assignments"),),
)

CODE = define_node(
    name="code",
    display_name="Code",
    category=NodeCategory.ACTION,
    class_name="CodeNode",
    description="Runs user supplied code over the items.",
    body=CODE_BODY,
    parameters=(
        ParameterSpec("jsCode", ParameterKind.CODE),
        ParameterSpec("pythonCode", ParameterKind.CODE),
        ParameterSpec("language", ParameterKind.OPTIONS, options=("javaScript", "python", "pythonNative")),
        ParameterSpec(
            "mode", ParameterKind.OPTIONS, default="runOnceForAllItems",
            options=("runOnceForAllItems", "runOnceForEachItem"),
        ),
    ),
    checks=(require_one_of("jsCode", "pythonCode"),),
)

IF = define_node(
    name="if",
    display_name="If",
    category=NodeCategory.ACTION,
    class_name="IfNode",
    description="Routes items to the true or false branch.",
    body=IF_BODY,
    imports=("import re",),
    parameters=(
        ParameterSpec("conditions", ParameterKind.ANY, required=True),
        ParameterSpec("combineOperation", ParameterKind.OPTIONS, default="all", options=("all", "any")),
    ),
)

MERGE = define_node(
    name="merge",
    display_name="Merge",
    category=NodeCategory.ACTION,
    class_name="MergeNode",
    description="Merges the items of two inputs.",
    body=MERGE_BODY,
    parameters=(
        ParameterSpec(
            "mode", ParameterKind.OPTIONS, default="append",
            options=("append", "mergeByIndex", "mergeByKey", "combine", "chooseBranch", "passThrough", "wait"),
        ),
        ParameterSpec("mergeByFields", ParameterKind.ANY),
    ),
)

NO_OP = define_node(
    name="noOp",
    display_name="No Operation",
    category=NodeCategory.ACTION,
    class_name="NoOpNode",
    description="Passes items through unchanged.",
    body=NO_OP_BODY,
)

WAIT = define_node(
    name="wait",
    display_name="Wait",
    category=NodeCategory.ACTION,
    class_name="WaitNode",
    description="Pauses the run before passing items on.",
    body=WAIT_BODY,
    imports=("import time", "from datetime import datetime"),
    parameters=(
        ParameterSpec("resume", ParameterKind.OPTIONS, default="timeInterval", options=("timeInterval", "specificTime", "webhook")),
        ParameterSpec("amount", ParameterKind.NUMBER, default=1),
        ParameterSpec("unit", ParameterKind.OPTIONS, default="seconds", options=("seconds", "minutes", "hours", "days")),
        ParameterSpec("dateTime", ParameterKind.STRING),
    ),
)

CORE_NODES = (HTTP_REQUEST, SET, CODE, IF, MERGE, NO_OP, WAIT)
