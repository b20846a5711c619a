"""Known javax -> jakarta coordinate replacements.

The built-in table is immutable and loaded once at import time; services
built on top of it only ever read, so one instance can be shared by any
number of worker threads.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from jakarta_readiness.exceptions import ConfigurationError
from jakarta_readiness.models import Artifact, CompatibilityLevel, JakartaEquivalent

logger = logging.getLogger(__name__)

ANY_ARTIFACT = "*"

DROP_IN = CompatibilityLevel.DROP_IN_REPLACEMENT
CODE_CHANGES = CompatibilityLevel.REQUIRES_CODE_CHANGES
NONE = CompatibilityLevel.NO_EQUIVALENT

MappingKey = tuple[str, str]


def _eq(
    coordinate: str,
    level: CompatibilityLevel,
    packages: tuple[str, ...] = (),
    notes: str | None = None,
) -> JakartaEquivalent:
    group_id, artifact_id, version = coordinate.split(":")
    return JakartaEquivalent(
        group_id=group_id,
        artifact_id=artifact_id,
        version=version,
        compatibility_level=level,
        javax_packages=packages,
        notes=notes,
    )


def _pruned(coordinate: str, packages: tuple[str, ...], notes: str) -> JakartaEquivalent:
    group_id, artifact_id = coordinate.split(":")
    return JakartaEquivalent(
        group_id=group_id,
        artifact_id=artifact_id,
        version="",
        compatibility_level=NONE,
        javax_packages=packages,
        notes=notes,
    )


_SERVLET = ("javax.servlet",)
_PERSISTENCE = ("javax.persistence",)
_XML_BIND = ("javax.xml.bind",)
_MAIL = ("javax.mail",)
_ACTIVATION = ("javax.activation",)

_BUILTIN: dict[MappingKey, JakartaEquivalent] = {
    # Servlet, JSP, EL, WebSocket
    ("javax.servlet", "javax.servlet-api"): _eq("jakarta.servlet:jakarta.servlet-api:6.0.0", DROP_IN, _SERVLET),
    ("javax.servlet", "servlet-api"): _eq(
        "jakarta.servlet:jakarta.servlet-api:6.0.0", CODE_CHANGES, _SERVLET, "Servlet 2.x API; expect removed methods"
    ),
    ("javax.servlet.jsp", "javax.servlet.jsp-api"): _eq(
        "jakarta.servlet.jsp:jakarta.servlet.jsp-api:3.1.1", DROP_IN, ("javax.servlet.jsp",)
    ),
    ("javax.servlet.jsp.jstl", "jstl-api"): _eq(
        "jakarta.servlet.jsp.jstl:jakarta.servlet.jsp.jstl-api:3.0.0", DROP_IN, ("javax.servlet.jsp.jstl",)
    ),
    ("javax.servlet", "jstl"): _eq(
        "jakarta.servlet.jsp.jstl:jakarta.servlet.jsp.jstl-api:3.0.0", CODE_CHANGES, ("javax.servlet.jsp.jstl",)
    ),
    ("javax.el", "javax.el-api"): _eq("jakarta.el:jakarta.el-api:5.0.1", DROP_IN, ("javax.el",)),
    ("org.glassfish", "javax.el"): _eq(
        "org.glassfish.expressly:expressly:5.0.0", CODE_CHANGES, ("javax.el",), "EL implementation moved to Expressly"
    ),
    ("javax.websocket", "javax.websocket-api"): _eq(
        "jakarta.websocket:jakarta.websocket-api:2.1.1", DROP_IN, ("javax.websocket",)
    ),
    # Persistence and transactions
    ("javax.persistence", "javax.persistence-api"): _eq(
        "jakarta.persistence:jakarta.persistence-api:3.1.0", DROP_IN, _PERSISTENCE
    ),
    ("javax.persistence", "persistence-api"): _eq(
        "jakarta.persistence:jakarta.persistence-api:3.1.0", CODE_CHANGES, _PERSISTENCE, "JPA 1.0 API"
    ),
    ("org.hibernate.javax.persistence", "hibernate-jpa-2.1-api"): _eq(
        "jakarta.persistence:jakarta.persistence-api:3.1.0", DROP_IN, _PERSISTENCE
    ),
    ("javax.transaction", "javax.transaction-api"): _eq(
        "jakarta.transaction:jakarta.transaction-api:2.0.1", DROP_IN, ("javax.transaction",)
    ),
    ("javax.transaction", "jta"): _eq(
        "jakarta.transaction:jakarta.transaction-api:2.0.1", DROP_IN, ("javax.transaction",)
    ),
    ("org.hibernate", "hibernate-core"): _eq(
        "org.hibernate.orm:hibernate-core:6.4.4.Final", CODE_CHANGES, _PERSISTENCE, "Hibernate 6 moved to org.hibernate.orm"
    ),
    # CDI, injection, validation, annotations
    ("javax.enterprise", "cdi-api"): _eq(
        "jakarta.enterprise:jakarta.enterprise.cdi-api:4.0.1",
        CODE_CHANGES,
        ("javax.enterprise", "javax.decorator"),
    ),
    ("javax.inject", "javax.inject"): _eq("jakarta.inject:jakarta.inject-api:2.0.1", DROP_IN, ("javax.inject",)),
    ("javax.interceptor", "javax.interceptor-api"): _eq(
        "jakarta.interceptor:jakarta.interceptor-api:2.1.0", DROP_IN, ("javax.interceptor",)
    ),
    ("javax.validation", "validation-api"): _eq(
        "jakarta.validation:jakarta.validation-api:3.0.2", DROP_IN, ("javax.validation",)
    ),
    ("org.hibernate", "hibernate-validator"): _eq(
        "org.hibernate.validator:hibernate-validator:8.0.1.Final", CODE_CHANGES, ("javax.validation",)
    ),
    ("org.hibernate.validator", "hibernate-validator"): _eq(
        "org.hibernate.validator:hibernate-validator:8.0.1.Final", DROP_IN, ("javax.validation",)
    ),
    ("javax.annotation", "javax.annotation-api"): _eq(
        "jakarta.annotation:jakarta.annotation-api:2.1.1", DROP_IN, ("javax.annotation",)
    ),
    # JSON, REST, XML, web services
    ("javax.json", "javax.json-api"): _eq("jakarta.json:jakarta.json-api:2.1.3", DROP_IN, ("javax.json",)),
    ("org.glassfish", "javax.json"): _eq("org.eclipse.parsson:parsson:1.1.5", DROP_IN, ("javax.json",)),
    ("javax.json.bind", "javax.json.bind-api"): _eq(
        "jakarta.json.bind:jakarta.json.bind-api:3.0.0", DROP_IN, ("javax.json.bind",)
    ),
    ("javax.ws.rs", "javax.ws.rs-api"): _eq("jakarta.ws.rs:jakarta.ws.rs-api:3.1.0", DROP_IN, ("javax.ws.rs",)),
    ("javax.ws.rs", "jsr311-api"): _eq(
        "jakarta.ws.rs:jakarta.ws.rs-api:3.1.0", CODE_CHANGES, ("javax.ws.rs",), "JAX-RS 1.1 API"
    ),
    ("javax.xml.bind", "jaxb-api"): _eq("jakarta.xml.bind:jakarta.xml.bind-api:4.0.1", DROP_IN, _XML_BIND),
    ("org.glassfish.jaxb", "jaxb-runtime"): _eq("org.glassfish.jaxb:jaxb-runtime:4.0.4", DROP_IN, _XML_BIND),
    ("com.sun.xml.bind", "jaxb-impl"): _eq("com.sun.xml.bind:jaxb-impl:4.0.4", DROP_IN, _XML_BIND),
    ("javax.xml.ws", "jaxws-api"): _eq("jakarta.xml.ws:jakarta.xml.ws-api:4.0.1", DROP_IN, ("javax.xml.ws",)),
    ("javax.xml.soap", "javax.xml.soap-api"): _eq(
        "jakarta.xml.soap:jakarta.xml.soap-api:3.0.1", DROP_IN, ("javax.xml.soap",)
    ),
    ("javax.jws", "javax.jws-api"): _eq("jakarta.jws:jakarta.jws-api:3.0.0", DROP_IN, ("javax.jws",)),
    # Mail, activation, messaging
    ("javax.mail", "javax.mail-api"): _eq("jakarta.mail:jakarta.mail-api:2.1.2", DROP_IN, _MAIL),
    ("javax.mail", "mail"): _eq("jakarta.mail:jakarta.mail-api:2.1.2", CODE_CHANGES, _MAIL),
    ("com.sun.mail", "javax.mail"): _eq("org.eclipse.angus:angus-mail:2.0.2", DROP_IN, _MAIL),
    ("javax.activation", "javax.activation-api"): _eq(
        "jakarta.activation:jakarta.activation-api:2.1.2", DROP_IN, _ACTIVATION
    ),
    ("javax.activation", "activation"): _eq("jakarta.activation:jakarta.activation-api:2.1.2", DROP_IN, _ACTIVATION),
    ("com.sun.activation", "javax.activation"): _eq(
        "org.eclipse.angus:angus-activation:2.0.1", DROP_IN, _ACTIVATION
    ),
    ("javax.jms", "javax.jms-api"): _eq("jakarta.jms:jakarta.jms-api:3.1.0", DROP_IN, ("javax.jms",)),
    # EJB, Faces, security, batch, connectors
    ("javax.ejb", "javax.ejb-api"): _eq("jakarta.ejb:jakarta.ejb-api:4.0.1", DROP_IN, ("javax.ejb",)),
    ("javax.faces", "javax.faces-api"): _eq("jakarta.faces:jakarta.faces-api:4.0.1", DROP_IN, ("javax.faces",)),
    ("org.glassfish", "javax.faces"): _eq("org.glassfish:jakarta.faces:4.0.5", DROP_IN, ("javax.faces",)),
    ("javax.security.enterprise", "javax.security.enterprise-api"): _eq(
        "jakarta.security.enterprise:jakarta.security.enterprise-api:3.0.0", DROP_IN, ("javax.security.enterprise",)
    ),
    ("javax.batch", "javax.batch-api"): _eq("jakarta.batch:jakarta.batch-api:2.1.1", DROP_IN, ("javax.batch",)),
    ("javax.resource", "javax.resource-api"): _eq(
        "jakarta.resource:jakarta.resource-api:2.1.0", DROP_IN, ("javax.resource",)
    ),
    # Umbrella APIs
    ("javax", "javaee-api"): _eq(
        "jakarta.platform:jakarta.jakartaee-api:10.0.0", CODE_CHANGES, (), "Whole-platform API; pruned specs are gone"
    ),
    ("javax", "javaee-web-api"): _eq("jakarta.platform:jakarta.jakartaee-web-api:10.0.0", CODE_CHANGES),
    # Specifications pruned from Jakarta EE 9
    ("javax.xml.registry", "javax.xml.registry-api"): _pruned(
        "javax.xml.registry:javax.xml.registry-api", ("javax.xml.registry",), "JAXR was pruned in Jakarta EE 9"
    ),
    ("javax.xml.rpc", "javax.xml.rpc-api"): _pruned(
        "javax.xml.rpc:javax.xml.rpc-api", ("javax.xml.rpc",), "JAX-RPC was pruned in Jakarta EE 9; port to JAX-WS"
    ),
    ("javax.enterprise.deploy", "javax.enterprise.deploy-api"): _pruned(
        "javax.enterprise.deploy:javax.enterprise.deploy-api",
        ("javax.enterprise.deploy",),
        "Deployment API (JSR-88) was pruned in Jakarta EE 9",
    ),
    ("javax.management.j2ee", "javax.management.j2ee-api"): _pruned(
        "javax.management.j2ee:javax.management.j2ee-api",
        ("javax.management.j2ee",),
        "Management API (JSR-77) was pruned in Jakarta EE 9",
    ),
    # Framework families: same artifactId at the first Jakarta-based release line.
    ("org.springframework.boot", ANY_ARTIFACT): _eq(
        f"org.springframework.boot:{ANY_ARTIFACT}:3.2.5", CODE_CHANGES, (), "Spring Boot 3 requires Java 17"
    ),
    ("org.springframework", ANY_ARTIFACT): _eq(f"org.springframework:{ANY_ARTIFACT}:6.1.6", CODE_CHANGES),
    ("org.springframework.security", ANY_ARTIFACT): _eq(
        f"org.springframework.security:{ANY_ARTIFACT}:6.2.4", CODE_CHANGES
    ),
    ("org.hibernate.orm", ANY_ARTIFACT): _eq(f"org.hibernate.orm:{ANY_ARTIFACT}:6.4.4.Final", CODE_CHANGES),
    ("org.eclipse.persistence", ANY_ARTIFACT): _eq(f"org.eclipse.persistence:{ANY_ARTIFACT}:4.0.2", CODE_CHANGES),
    ("org.eclipse.jetty", ANY_ARTIFACT): _eq(f"org.eclipse.jetty:{ANY_ARTIFACT}:11.0.20", CODE_CHANGES),
    ("org.apache.tomcat.embed", ANY_ARTIFACT): _eq(f"org.apache.tomcat.embed:{ANY_ARTIFACT}:10.1.20", CODE_CHANGES),
    ("org.apache.tomcat", ANY_ARTIFACT): _eq(f"org.apache.tomcat:{ANY_ARTIFACT}:10.1.20", CODE_CHANGES),
    ("io.undertow", ANY_ARTIFACT): _eq(f"io.undertow:{ANY_ARTIFACT}:2.3.13.Final", CODE_CHANGES),
    ("org.apache.myfaces.core", ANY_ARTIFACT): _eq(f"org.apache.myfaces.core:{ANY_ARTIFACT}:4.0.2", CODE_CHANGES),
    ("org.glassfish.jersey.core", ANY_ARTIFACT): _eq(f"org.glassfish.jersey.core:{ANY_ARTIFACT}:3.1.6", CODE_CHANGES),
    ("org.glassfish.jersey.containers", ANY_ARTIFACT): _eq(
        f"org.glassfish.jersey.containers:{ANY_ARTIFACT}:3.1.6", CODE_CHANGES
    ),
    ("org.glassfish.jersey.media", ANY_ARTIFACT): _eq(f"org.glassfish.jersey.media:{ANY_ARTIFACT}:3.1.6", CODE_CHANGES),
    ("org.glassfish.jersey.inject", ANY_ARTIFACT): _eq(
        f"org.glassfish.jersey.inject:{ANY_ARTIFACT}:3.1.6", CODE_CHANGES
    ),
    ("org.apache.cxf", ANY_ARTIFACT): _eq(f"org.apache.cxf:{ANY_ARTIFACT}:4.0.4", CODE_CHANGES),
    ("org.jboss.resteasy", ANY_ARTIFACT): _eq(f"org.jboss.resteasy:{ANY_ARTIFACT}:6.2.8.Final", CODE_CHANGES),
    ("io.swagger.core.v3", "swagger-annotations"): _eq(
        "io.swagger.core.v3:swagger-annotations-jakarta:2.2.21", DROP_IN
    ),
}

BUILTIN_MAPPINGS: Mapping[MappingKey, JakartaEquivalent] = MappingProxyType(_BUILTIN)


class MappingEntry(BaseModel):
    """One entry of a user-supplied mappings file."""

    source: str = Field(..., pattern=r"^[^:\s]+:[^:\s]+$")
    target: str = Field(..., pattern=r"^[^:\s]+:[^:\s]+:[^:\s]+$")
    compatibility_level: CompatibilityLevel = CompatibilityLevel.DROP_IN_REPLACEMENT
    javax_packages: tuple[str, ...] = ()
    notes: str | None = None

    def key(self) -> MappingKey:
        group_id, artifact_id = self.source.split(":")
        return (group_id, artifact_id)

    def equivalent(self) -> JakartaEquivalent:
        group_id, artifact_id, version = self.target.split(":")
        return JakartaEquivalent(
            group_id=group_id,
            artifact_id=artifact_id,
            version=version,
            compatibility_level=self.compatibility_level,
            javax_packages=self.javax_packages,
            notes=self.notes,
        )


_ENTRIES = TypeAdapter(list[MappingEntry])


def load_mappings_file(path: Path) -> dict[MappingKey, JakartaEquivalent]:
    """Load extra mappings from a JSON list of `MappingEntry` objects.

    Raises:
        ConfigurationError: If the file cannot be read or does not validate.
    """
    try:
        entries = _ENTRIES.validate_python(json.loads(path.read_text(encoding="utf-8")))
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        raise ConfigurationError(f"Invalid mappings file {path}: {exc}") from exc
    return {e.key(): e.equivalent() for e in entries}


class JakartaMappingService:
    """Looks up the Jakarta replacement for an artifact.

    Lookups are by ``(groupId, artifactId)`` with a group-wide fallback, so
    they are independent of the artifact version. Group-wide entries keep
    the artifact's own artifactId.
    """

    def __init__(self, extra: Mapping[MappingKey, JakartaEquivalent] | None = None) -> None:
        table = dict(BUILTIN_MAPPINGS)
        if extra:
            table.update(extra)
        self._table: Mapping[MappingKey, JakartaEquivalent] = MappingProxyType(table)

    @classmethod
    def from_file(cls, path: Path | None) -> "JakartaMappingService":
        if path is None:
            return cls()
        extra = load_mappings_file(path)
        logger.info("Loaded %d extra mapping(s) from %s", len(extra), path)
        return cls(extra)

    def __len__(self) -> int:
        return len(self._table)

    def source_keys(self) -> frozenset[MappingKey]:
        """Coordinates known to be javax-era artifacts."""
        return frozenset(self._table)

    def find_mapping(self, artifact: Artifact) -> JakartaEquivalent | None:
        found = self._table.get((artifact.group_id, artifact.artifact_id))
        if found is not None:
            return found
        found = self._table.get((artifact.group_id, ANY_ARTIFACT))
        if found is None:
            return None
        return found.model_copy(update={"artifact_id": artifact.artifact_id})
