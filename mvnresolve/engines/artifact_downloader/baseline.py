"""Baseline filters: libraries a target runtime already ships."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from mvnresolve.models.dependency import Dependency


class BaselineFilter(Protocol):
    """Return True when *dependency* is already provided and must not be downloaded."""

    def __call__(self, dependency: Dependency) -> bool: ...


class CoordinateBaseline:
    """Baseline matching on ``(group_id, artifact_id)``, ignoring the version."""

    def __init__(self, coordinates: Iterable[tuple[str, str] | str]) -> None:
        self._coordinates: set[tuple[str, str]] = set()
        for item in coordinates:
            if isinstance(item, str):
                group_id, _, artifact_id = item.partition(":")
                item = (group_id, artifact_id)
            self._coordinates.add(item)

    def __call__(self, dependency: Dependency) -> bool:
        return dependency.coordinate in self._coordinates

    def __len__(self) -> int:
        return len(self._coordinates)

    def __contains__(self, coordinate: object) -> bool:
        return coordinate in self._coordinates


# Libraries bundled with the App Inventor companion runtime.
_APP_INVENTOR_LIBRARIES: dict[str, tuple[str, ...]] = {
    "ch.acra": ("acra",),
    "com.caverock": ("androidsvg",),
    "androidx.annotation": ("annotation",),
    "androidx.appcompat": ("appcompat",),
    "androidx.asynclayoutinflater": ("asynclayoutinflater",),
    "androidx.cardview": ("cardview",),
    "androidx.constraintlayout": ("constraintlayout", "constraintlayout-solver"),
    "androidx.collection": ("collection",),
    "androidx.coordinaterlayout": ("coordinatorlayout",),
    "androidx.core": ("core", "core-runtime", "core-common"),
    "androidx.cursoradapter": ("cursoradapter",),
    "androidx.customview": ("customview",),
    "androidx.documentfile": ("documentfile",),
    "androidx.drawerlayout": ("drawerlayout",),
    "com.firebase": ("firebase-client-android",),
    "androidx.fragment": ("fragment",),
    "org.apache.httpcomponents": ("httpcore", "httpmime"),
    "commons-codec": ("commons-codec",),
    "commons-fileupload": ("commons-fileupload",),
    "commons-io": ("commons-io",),
    "org.apache.commons": ("commons-lang3", "commons-pool2"),
    "com.google.apis": ("google-api-services-fusiontables",),
    "com.google.code.gson": ("gson",),
    "com.google.guava": ("guava",),
    "redis.clients": ("jedis",),
    "com.google.api-client": ("google-api-client", "google-api-client-android2"),
    "com.google.http-client": (
        "google-http-client",
        "google-http-client-android2",
        "google-http-client-android3",
    ),
    "com.google.oauth-client": ("google-oauth-client",),
    "org.osmdroid": ("osmdroid-android",),
    "net.cattaka": ("physicaloid",),
    "org.twitter4j": ("twitter4j-core", "twitter4j-media-support"),
    "androidx.interpolator": ("interpolator",),
    "androidx.legacy": ("legacy-support-core-ui", "legacy-support-core-utils"),
    "androidx.lifecycle": (
        "lifecycle-livedata",
        "lifecycle-livedata-core",
        "lifecycle-runtime",
        "lifecycle-viewmodel",
    ),
    "androidx.loader": ("loader",),
    "androidx.localbroadcastmanager": ("localbroadcastmanager",),
    "androidx.print": ("print",),
    "androidx.recyclerview": ("recyclerview",),
    "androidx.slidingpanelayout": ("slidingpanelayout",),
    "androidx.swiperefreshlayout": ("swiperefreshlayout",),
    "androidx.vectordrawable": ("vectordrawable", "vectordrawable-animated"),
    "androidx.versionedparcelable": ("versionedparcelable",),
    "androidx.viewpager": ("viewpager",),
}


def app_inventor_baseline() -> CoordinateBaseline:
    return CoordinateBaseline(
        (group_id, artifact_id)
        for group_id, artifacts in _APP_INVENTOR_LIBRARIES.items()
        for artifact_id in artifacts
    )
