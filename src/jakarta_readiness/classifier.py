"""Decide whether an artifact belongs to the javax or the jakarta world.

Classification is a chain of strategies tried in order. The first one that
returns a namespace wins; ``None`` means "inconclusive, ask the next one".
"""

from __future__ import annotations

import logging
import re
import zipfile
from collections.abc import Iterable, Iterator, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from types import MappingProxyType
from typing import Protocol

from jakarta_readiness.jars import JarResolver
from jakarta_readiness.mapping import ANY_ARTIFACT, BUILTIN_MAPPINGS, MappingKey
from jakarta_readiness.models import Artifact, Namespace
from jakarta_readiness.versions import is_at_least

logger = logging.getLogger(__name__)

# First release of each family built on jakarta.* packages.
JAKARTA_SINCE: Mapping[MappingKey, str] = MappingProxyType(
    {
        ("org.springframework.boot", ANY_ARTIFACT): "3.0.0",
        ("org.springframework", ANY_ARTIFACT): "6.0.0",
        ("org.springframework.security", ANY_ARTIFACT): "6.0.0",
        ("org.hibernate", "hibernate-core"): "6.0.0",
        ("org.hibernate.orm", ANY_ARTIFACT): "6.0.0",
        ("org.hibernate.validator", "hibernate-validator"): "7.0.0",
        ("org.eclipse.jetty", ANY_ARTIFACT): "11.0.0",
        ("org.apache.tomcat.embed", ANY_ARTIFACT): "10.0.0",
        ("org.apache.tomcat", ANY_ARTIFACT): "10.0.0",
        ("org.glassfish.jersey.core", ANY_ARTIFACT): "3.0.0",
        ("org.glassfish.jersey.containers", ANY_ARTIFACT): "3.0.0",
        ("org.glassfish.jersey.media", ANY_ARTIFACT): "3.0.0",
        ("org.glassfish.jersey.inject", ANY_ARTIFACT): "3.0.0",
        ("org.glassfish.jaxb", "jaxb-runtime"): "3.0.0",
        ("com.sun.xml.bind", "jaxb-impl"): "3.0.0",
        ("org.apache.cxf", ANY_ARTIFACT): "4.0.0",
        ("org.jboss.resteasy", ANY_ARTIFACT): "6.0.0",
        ("io.undertow", ANY_ARTIFACT): "2.3.0",
        ("org.apache.myfaces.core", ANY_ARTIFACT): "4.0.0",
        ("org.eclipse.persistence", ANY_ARTIFACT): "3.0.0",
    }
)

# Java EE packages that moved; Java SE javax packages (swing, crypto, sql, ...)
# and javax.transaction.xa stay where they are.
_EE_PACKAGES = (
    rb"servlet|persistence|ws/rs|xml/bind|xml/ws|xml/soap|jws|ejb|enterprise|inject|validation"
    rb"|transaction/(?!xa/)|json|mail|activation|jms|faces|el|websocket|batch|resource|interceptor|decorator"
    rb"|security/enterprise|security/auth/message|security/jacc"
    rb"|annotation/(?:PostConstruct|PreDestroy|Resource|Priority|Generated|ManagedBean|security/)"
)
_PACKAGE_REF_RE = re.compile(rb"(javax|jakarta)/(?:" + _EE_PACKAGES + rb")")


class NamespaceStrategy(Protocol):
    """One way of recognising an artifact's namespace."""

    def classify(self, artifact: Artifact) -> Namespace | None:
        ...


class CoordinateStrategy:
    """Classify from Maven coordinates alone. Cheap; no I/O."""

    def __init__(
        self,
        known_javax: Iterable[MappingKey] | None = None,
        jakarta_since: Mapping[MappingKey, str] = JAKARTA_SINCE,
    ) -> None:
        self.known_javax = frozenset(known_javax if known_javax is not None else BUILTIN_MAPPINGS)
        self.jakarta_since = jakarta_since

    def _threshold(self, artifact: Artifact) -> str | None:
        return self.jakarta_since.get(
            (artifact.group_id, artifact.artifact_id),
            self.jakarta_since.get((artifact.group_id, ANY_ARTIFACT)),
        )

    def classify(self, artifact: Artifact) -> Namespace | None:
        group_id = artifact.group_id
        if group_id.startswith("jakarta."):
            return Namespace.JAKARTA
        if group_id.startswith("javax.") or group_id == "javax":
            return Namespace.JAVAX

        minimum = self._threshold(artifact)
        if minimum is not None:
            newer = is_at_least(artifact.version, minimum)
            if newer is None:
                return None
            return Namespace.JAKARTA if newer else Namespace.JAVAX

        if artifact.artifact_id.startswith("jakarta."):
            return Namespace.JAKARTA
        if artifact.artifact_id.startswith("javax."):
            return Namespace.JAVAX

        if (group_id, artifact.artifact_id) in self.known_javax or (group_id, ANY_ARTIFACT) in self.known_javax:
            return Namespace.JAVAX
        return None


class ArchiveContentStrategy:
    """Classify by scanning the artifact's class files for Java EE package references.

    Class files keep referenced type names in their constant pool in internal
    form (``javax/servlet/http/HttpServlet``), so a byte search is enough.
    """

    def __init__(self, resolver: JarResolver, max_entries: int = 5000) -> None:
        self.resolver = resolver
        self.max_entries = max_entries

    def _class_payloads(self, archive: zipfile.ZipFile) -> Iterator[bytes]:
        seen = 0
        for info in archive.infolist():
            if not info.filename.endswith(".class"):
                continue
            if seen >= self.max_entries:
                return
            seen += 1
            yield archive.read(info)

    def classify(self, artifact: Artifact) -> Namespace | None:
        jar = self.resolver.resolve(artifact)
        if jar is None:
            return None

        found: set[bytes] = set()
        try:
            with zipfile.ZipFile(jar) as archive:
                for payload in self._class_payloads(archive):
                    found.update(m.group(1) for m in _PACKAGE_REF_RE.finditer(payload))
                    if len(found) == 2:
                        break
        except (OSError, zipfile.BadZipFile) as exc:
            logger.warning("Cannot read %s for %s: %s", jar, artifact.compact(), exc)
            return None

        if found == {b"javax", b"jakarta"}:
            return Namespace.MIXED
        if b"javax" in found:
            return Namespace.JAVAX
        if b"jakarta" in found:
            return Namespace.JAKARTA
        return Namespace.UNKNOWN


class NamespaceCompatibilityMap(Mapping[Artifact, Namespace]):
    """Read-only artifact -> namespace lookup for one analysis run.

    Artifacts that were never classified read as UNKNOWN.
    """

    def __init__(self, namespaces: Mapping[Artifact, Namespace] | None = None) -> None:
        self._namespaces = MappingProxyType(dict(namespaces or {}))

    def __getitem__(self, artifact: Artifact) -> Namespace:
        return self._namespaces.get(artifact, Namespace.UNKNOWN)

    def __iter__(self) -> Iterator[Artifact]:
        return iter(self._namespaces)

    def __len__(self) -> int:
        return len(self._namespaces)

    def __contains__(self, artifact: object) -> bool:
        return artifact in self._namespaces

    def with_namespace(self, namespace: Namespace) -> list[Artifact]:
        return sorted((a for a, ns in self._namespaces.items() if ns is namespace), key=lambda a: a.compact())

    def counts(self) -> dict[Namespace, int]:
        totals = {ns: 0 for ns in Namespace}
        for ns in self._namespaces.values():
            totals[ns] += 1
        return totals

    def to_dict(self) -> dict[str, str]:
        return {a.compact(): ns.value for a, ns in sorted(self._namespaces.items(), key=lambda kv: kv[0].compact())}


class NamespaceClassifier:
    """Runs the strategies in order until one is conclusive."""

    def __init__(self, strategies: Sequence[NamespaceStrategy], max_workers: int = 8) -> None:
        self.strategies = tuple(strategies)
        self.max_workers = max_workers

    def classify(self, artifact: Artifact) -> Namespace:
        for strategy in self.strategies:
            try:
                namespace = strategy.classify(artifact)
            except Exception as exc:
                logger.warning(
                    "%s failed for %s: %s", type(strategy).__name__, artifact.compact(), exc
                )
                continue
            if namespace is not None:
                return namespace
        return Namespace.UNKNOWN

    def classify_all(self, artifacts: Iterable[Artifact]) -> NamespaceCompatibilityMap:
        items = list(dict.fromkeys(artifacts))
        if len(items) <= 1 or self.max_workers <= 1:
            results = [self.classify(a) for a in items]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                results = list(pool.map(self.classify, items))
        logger.debug("Classified %d artifact(s)", len(items))
        return NamespaceCompatibilityMap(dict(zip(items, results)))
