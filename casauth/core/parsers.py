"""
Response parsers for the three CAS validation flavours.

Each parser turns the raw validation body into a principal, or raises
ProtocolRejection (the server said no) / MalformedResponseError (we could
not make sense of what it said).
"""
import logging
from xml.parsers.expat import ExpatError

import xmltodict

from ..errors import MalformedResponseError, ProtocolRejection
from ..models import CAS1, CAS3, SamlProfile

log = logging.getLogger(__name__)


def _normalize_key(path, key, value):
    # Attributes ("@Value") and text ("#text") keep their names.
    if key[:1] in ("@", "#"):
        return key, value
    return key.split(":")[-1].lower(), value


def parse_xml(body: str) -> dict:
    """
    Parse XML into nested dicts, with tag names lower-cased and namespace
    prefixes stripped: <cas:authenticationSuccess> -> "authenticationsuccess".
    """
    try:
        return xmltodict.parse(body, postprocessor=_normalize_key)
    except ExpatError as e:
        log.warning("Unparseable CAS response: %s", e)
        raise MalformedResponseError() from e


def _as_list(value):
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _text(node):
    if isinstance(node, dict):
        return node.get("#text")
    return node


class Cas1Parser:
    """`yes\\n<user>\\n` or `no\\n`."""

    def parse(self, body: str) -> str:
        lines = body.split("\n")
        status = lines[0].strip()
        if status == "no":
            raise ProtocolRejection()
        if status == "yes" and len(lines) >= 2 and lines[1].strip():
            return lines[1].strip()
        raise MalformedResponseError()


class Cas3Parser:
    """/p3/serviceValidate XML."""

    def parse(self, body: str) -> dict:
        document = parse_xml(body)
        response = document.get("serviceresponse")
        if not isinstance(response, dict):
            raise ProtocolRejection()

        if "authenticationfailure" in response:
            failure = response["authenticationfailure"]
            code = failure.get("@code") if isinstance(failure, dict) else None
            log.info("CAS authentication failure: %s", code)
            message = f"Authentication failed {code}" if code else "Authentication failed"
            raise ProtocolRejection(message, code=code)

        success = response.get("authenticationsuccess")
        if success:
            return success
        raise ProtocolRejection()


class SamlParser:
    """SAML 1.1 response wrapped in a SOAP envelope (/samlValidate)."""

    def parse(self, body: str) -> SamlProfile:
        document = parse_xml(body)
        try:
            response = document["envelope"]["body"]["response"]
            status = response["status"]["statuscode"]["@Value"]
            if not status.endswith("Success"):
                log.info("SAML validation status: %s", status)
                raise ProtocolRejection(code=status)

            assertion = response["assertion"]
            statement = assertion.get("attributestatement") or {}
            attributes = {}
            for attribute in _as_list(statement.get("attribute")):
                name = attribute.get("@AttributeName") or attribute["@Name"]
                values = [_text(value) for value in _as_list(attribute.get("attributevalue"))]
                attributes[name.lower()] = values[0] if len(values) == 1 else values

            if "authenticationstatement" in assertion:
                subject = assertion["authenticationstatement"]["subject"]
            else:
                subject = statement["subject"]
            user = _text(subject["nameidentifier"])
            return SamlProfile(user=user, attributes=attributes)
        except ProtocolRejection:
            raise
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            # Any hole in the expected structure reads as a plain rejection.
            log.info("Incomplete SAML response: %r", e)
            raise ProtocolRejection() from e


def select_parser(version: str, use_saml: bool = False):
    if version == CAS1:
        return Cas1Parser()
    if version == CAS3:
        return SamlParser() if use_saml else Cas3Parser()
    raise ValueError(f"unsupported version {version}")
