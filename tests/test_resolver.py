"""Tests for the graph resolver against an in-memory repository."""

from __future__ import annotations

from unittest.mock import MagicMock

import anyio
import pytest

from mvnresolve.engines.artifact_downloader import ArtifactDownloader
from mvnresolve.engines.graph_resolver import GraphResolver, RangeStrategy
from mvnresolve.models.dependency import Dependency
from mvnresolve.progress import ProgressTracker

pytestmark = pytest.mark.anyio


def _coords(dependencies) -> set[str]:
    return {f"{d.group_id}:{d.artifact_id}:{d.version}" for d in dependencies}


async def _resolve(client, cache, repos, root: Dependency, **kw):
    resolver = GraphResolver(client, cache, repos, **kw)
    with anyio.fail_after(10):
        return await resolver.resolve(root)


# ── TestEndToEnd ──────────────────────────────────────────────────────────


class TestEndToEnd:
    async def test_compile_dependency_kept_test_dependency_dropped(
        self, client, cache, maven, repo_a
    ):
        dep = maven.dependency
        maven.add_pom(
            repo_a,
            "org.example:lib:1.0",
            dependencies=[
                dep("org.dep", "runtime-lib", "1.0"),
                dep("junit", "junit", "4.13", scope="test"),
            ],
        )
        maven.add_pom(repo_a, "org.dep:runtime-lib:1.0")
        maven.add_artifact(repo_a, "org.dep:runtime-lib:1.0")

        result = await _resolve(client, cache, [repo_a], Dependency("org.example", "lib", "1.0"))

        assert result.found
        assert _coords(result.dependencies) == {"org.dep:runtime-lib:1.0"}
        assert not any("junit" in url for url in maven.requests)

        downloader = ArtifactDownloader(client, cache, [repo_a])
        download = await downloader.download(result.dependencies)
        assert len(download.downloaded) == 1

    async def test_version_from_own_properties(self, client, cache, maven, repo_a):
        maven.add_pom(
            repo_a,
            "org.example:app:1.0",
            properties={"lib.version": "2.3"},
            dependencies=[maven.dependency("org.example", "lib", "${lib.version}")],
        )
        maven.add_pom(repo_a, "org.example:lib:2.3")

        result = await _resolve(client, cache, [repo_a], Dependency("org.example", "app", "1.0"))

        assert [d.version for d in result.dependencies] == ["2.3"]

    async def test_callback_receives_result(self, client, cache, maven, repo_a):
        maven.add_pom(repo_a, "org.example:lib:1.0", packaging="aar")
        callback = MagicMock()
        root = Dependency("org.example", "lib", "1.0")

        resolver = GraphResolver(client, cache, [repo_a])
        await resolver.resolve(root, callback=callback)

        callback.assert_called_once()
        found, pom_url, repository, dependencies, called_root = callback.call_args.args
        assert found is True
        assert pom_url == repo_a.url_for(root.pom_path)
        assert repository == repo_a
        assert dependencies == []
        assert called_root is root
        assert root.type == "aar"


# ── TestRepositories ──────────────────────────────────────────────────────


class TestRepositories:
    async def test_fallback_reports_second_repository(self, client, cache, maven, repo_a, repo_b):
        maven.add_pom(
            repo_b,
            "org.example:lib:1.0",
            dependencies=[maven.dependency("org.dep", "child", "1.0")],
        )
        maven.add_pom(repo_b, "org.dep:child:1.0")
        root = Dependency("org.example", "lib", "1.0")

        result = await _resolve(client, cache, [repo_a, repo_b], root)

        assert result.found
        assert result.repository == repo_b
        assert root.repository == repo_b
        assert result.dependencies[0].repository == repo_b
        assert maven.requests[repo_a.url_for(root.pom_path)] == 1

    async def test_root_not_found_lists_every_url(self, client, cache, maven, repo_a, repo_b):
        root = Dependency("org.example", "missing", "1.0")
        callback = MagicMock()

        resolver = GraphResolver(client, cache, [repo_a, repo_b])
        result = await resolver.resolve(root, callback=callback)

        assert not result.found
        assert result.dependencies == []
        assert result.artifacts == []
        assert result.tried_urls == [
            repo_a.url_for(root.pom_path),
            repo_b.url_for(root.pom_path),
        ]
        assert callback.call_args.args[0] is False

    async def test_server_error_falls_through(self, client, cache, maven, repo_a, repo_b):
        root = Dependency("org.example", "lib", "1.0")
        maven.statuses[repo_a.url_for(root.pom_path)] = 503
        maven.add_pom(repo_b, "org.example:lib:1.0")

        result = await _resolve(client, cache, [repo_a, repo_b], root)

        assert result.found
        assert result.repository == repo_b

    async def test_cached_pom_not_refetched(self, client, cache, maven, repo_a):
        maven.add_pom(repo_a, "org.example:lib:1.0")

        await _resolve(client, cache, [repo_a], Dependency("org.example", "lib", "1.0"))
        await _resolve(client, cache, [repo_a], Dependency("org.example", "lib", "1.0"))

        assert maven.total_requests == 1


# ── TestGraph ─────────────────────────────────────────────────────────────


class TestGraph:
    async def test_shared_dependency_appears_once(self, client, cache, maven, repo_a):
        dep = maven.dependency
        maven.add_pom(
            repo_a,
            "org.example:root:1.0",
            dependencies=[dep("org.example", "a", "1.0"), dep("org.example", "b", "1.0")],
        )
        maven.add_pom(repo_a, "org.example:a:1.0", dependencies=[dep("org.example", "shared", "1.0")])
        maven.add_pom(repo_a, "org.example:b:1.0", dependencies=[dep("org.example", "shared", "1.0")])
        maven.add_pom(repo_a, "org.example:shared:1.0")

        result = await _resolve(client, cache, [repo_a], Dependency("org.example", "root", "1.0"))

        keys = [d.key for d in result.dependencies]
        assert keys.count(("org.example", "shared", "1.0")) == 1
        assert len(keys) == 3
        assert maven.requests[repo_a.url_for("org/example/shared/1.0/shared-1.0.pom")] == 1

    async def test_transitive_not_found_drops_branch(self, client, cache, maven, repo_a):
        maven.add_pom(
            repo_a,
            "org.example:root:1.0",
            dependencies=[
                maven.dependency("org.example", "gone", "1.0"),
                maven.dependency("org.example", "here", "1.0"),
            ],
        )
        maven.add_pom(repo_a, "org.example:here:1.0")

        result = await _resolve(client, cache, [repo_a], Dependency("org.example", "root", "1.0"))

        assert result.found
        assert _coords(result.dependencies) == {"org.example:here:1.0"}
        assert _coords(result.not_found) == {"org.example:gone:1.0"}

    async def test_malformed_pom_is_found_but_empty(self, client, cache, maven, repo_a):
        maven.add_pom(
            repo_a,
            "org.example:root:1.0",
            dependencies=[maven.dependency("org.example", "broken", "1.0")],
        )
        maven.add_pom(repo_a, "org.example:broken:1.0", body="<project><dependencies>")

        result = await _resolve(client, cache, [repo_a], Dependency("org.example", "root", "1.0"))

        assert _coords(result.dependencies) == {"org.example:broken:1.0"}
        assert _coords(result.skipped) == {"org.example:broken:1.0"}

    async def test_plexus_skipped_without_fetch(self, client, cache, maven, repo_a):
        maven.add_pom(
            repo_a,
            "org.example:root:1.0",
            dependencies=[maven.dependency("org.codehaus.plexus", "plexus-utils", "1.5")],
        )

        result = await _resolve(client, cache, [repo_a], Dependency("org.example", "root", "1.0"))

        assert _coords(result.dependencies) == {"org.codehaus.plexus:plexus-utils:1.5"}
        assert not any("plexus" in url for url in maven.requests)

    async def test_test_scope_excluded_transitively(self, client, cache, maven, repo_a):
        maven.add_pom(
            repo_a,
            "org.example:root:1.0",
            dependencies=[maven.dependency("org.example", "a", "1.0")],
        )
        maven.add_pom(
            repo_a,
            "org.example:a:1.0",
            dependencies=[maven.dependency("org.mockito", "mockito-core", "5.0", scope="test")],
        )

        result = await _resolve(client, cache, [repo_a], Dependency("org.example", "root", "1.0"))

        assert _coords(result.dependencies) == {"org.example:a:1.0"}

    async def test_range_dependency(self, client, cache, maven, repo_a):
        maven.add_pom(
            repo_a,
            "org.example:root:1.0",
            dependencies=[maven.dependency("org.example", "ranged", "[1.0,2.0)")],
        )
        maven.add_metadata(repo_a, "org.example:ranged", ["1.0", "1.5", "2.0"], latest="2.0")
        maven.add_pom(repo_a, "org.example:ranged:1.5")
        maven.add_pom(repo_a, "org.example:ranged:2.0")

        in_range = await _resolve(client, cache, [repo_a], Dependency("org.example", "root", "1.0"))
        latest = await _resolve(
            client,
            cache,
            [repo_a],
            Dependency("org.example", "root", "1.0"),
            range_strategy=RangeStrategy.LATEST,
        )

        assert _coords(in_range.dependencies) == {"org.example:ranged:1.5"}
        assert _coords(latest.dependencies) == {"org.example:ranged:2.0"}

    async def test_conflict_keeps_highest_version(self, client, cache, maven, repo_a):
        dep = maven.dependency
        maven.add_pom(
            repo_a,
            "org.example:root:1.0",
            dependencies=[dep("org.example", "a", "1.0"), dep("org.example", "b", "1.0")],
        )
        maven.add_pom(repo_a, "org.example:a:1.0", dependencies=[dep("org.lib", "x", "1.9")])
        maven.add_pom(repo_a, "org.example:b:1.0", dependencies=[dep("org.lib", "x", "1.10")])
        maven.add_pom(repo_a, "org.lib:x:1.9")
        maven.add_pom(repo_a, "org.lib:x:1.10")

        result = await _resolve(client, cache, [repo_a], Dependency("org.example", "root", "1.0"))

        versions = [d.version for d in result.dependencies if d.artifact_id == "x"]
        assert versions == ["1.10"]

    async def test_root_coordinate_requested_again_keeps_root_version(
        self, client, cache, maven, repo_a
    ):
        dep = maven.dependency
        maven.add_pom(repo_a, "org.example:lib:1.0", dependencies=[dep("org.x", "a", "1.0")])
        maven.add_pom(repo_a, "org.x:a:1.0", dependencies=[dep("org.example", "lib", "2.0")])
        maven.add_pom(repo_a, "org.example:lib:2.0")

        result = await _resolve(client, cache, [repo_a], Dependency("org.example", "lib", "1.0"))

        assert _coords(result.dependencies) == {"org.x:a:1.0"}
        assert [f"{d.group_id}:{d.artifact_id}:{d.version}" for d in result.artifacts] == [
            "org.example:lib:1.0",
            "org.x:a:1.0",
        ]

    async def test_dependencies_of_losing_version_dropped(self, client, cache, maven, repo_a):
        dep = maven.dependency
        maven.add_pom(
            repo_a,
            "org.example:root:1.0",
            dependencies=[dep("org.x", "x", "1.0"), dep("org.b", "b", "1.0")],
        )
        maven.add_pom(repo_a, "org.x:x:1.0", dependencies=[dep("org.y", "only-old", "1.0")])
        maven.add_pom(repo_a, "org.b:b:1.0", dependencies=[dep("org.x", "x", "2.0")])
        maven.add_pom(repo_a, "org.x:x:2.0")
        maven.add_pom(repo_a, "org.y:only-old:1.0")

        result = await _resolve(client, cache, [repo_a], Dependency("org.example", "root", "1.0"))

        assert _coords(result.dependencies) == {"org.b:b:1.0", "org.x:x:2.0"}

    async def test_unpinned_root_uses_latest(self, client, cache, maven, repo_a):
        maven.add_metadata(repo_a, "org.example:lib", ["1.0", "1.1"], latest="1.1")
        maven.add_pom(repo_a, "org.example:lib:1.1")
        root = Dependency("org.example", "lib")

        result = await _resolve(client, cache, [repo_a], root)

        assert result.found
        assert root.version == "1.1"

    async def test_unpinned_root_without_metadata(self, client, cache, maven, repo_a):
        root = Dependency("org.example", "lib")

        result = await _resolve(client, cache, [repo_a], root)

        assert not result.found
        assert result.tried_urls == [repo_a.url_for(root.metadata_path)]

    async def test_progress_events(self, client, cache, maven, repo_a):
        maven.add_pom(repo_a, "org.example:lib:1.0")
        tracker = ProgressTracker()
        events = []
        tracker.artifact_callbacks.append(lambda e: events.append(e.kind))

        await _resolve(
            client, cache, [repo_a], Dependency("org.example", "lib", "1.0"), progress=tracker
        )

        assert events == ["pom_downloading", "pom_downloaded", "pom_parsing", "pom_parsed"]

    async def test_many_siblings_with_small_cap(self, client, cache, maven, repo_a):
        children = [maven.dependency("org.many", f"lib{i}", "1.0") for i in range(25)]
        maven.add_pom(repo_a, "org.example:root:1.0", dependencies=children)
        for i in range(25):
            maven.add_pom(repo_a, f"org.many:lib{i}:1.0")

        result = await _resolve(
            client, cache, [repo_a], Dependency("org.example", "root", "1.0"), concurrency=2
        )

        assert len(result.dependencies) == 25


# ── TestInheritance ───────────────────────────────────────────────────────


class TestInheritance:
    async def test_managed_version_from_parent(self, client, cache, maven, repo_a):
        dep = maven.dependency
        maven.add_pom(
            repo_a,
            "org.example:parent:1",
            packaging="pom",
            properties={"shared.version": "5.0"},
            managed=[dep("org.lib", "managed", "2.0")],
        )
        maven.add_pom(
            repo_a,
            "org.example:child:1.0",
            parent="org.example:parent:1",
            dependencies=[
                dep("org.lib", "managed"),
                dep("org.lib", "shared", "${shared.version}"),
            ],
        )
        maven.add_pom(repo_a, "org.lib:managed:2.0")
        maven.add_pom(repo_a, "org.lib:shared:5.0")

        result = await _resolve(client, cache, [repo_a], Dependency("org.example", "child", "1.0"))

        assert _coords(result.dependencies) == {
            "org.example:parent:1",
            "org.lib:managed:2.0",
            "org.lib:shared:5.0",
        }

    async def test_child_properties_not_visible_to_parent(self, client, cache, maven, repo_a):
        maven.add_pom(
            repo_a,
            "org.example:parent:1",
            packaging="pom",
            dependencies=[maven.dependency("org.lib", "from-parent", "${child.only}")],
        )
        maven.add_pom(
            repo_a,
            "org.example:child:1.0",
            parent="org.example:parent:1",
            properties={"child.only": "9.9"},
        )

        result = await _resolve(client, cache, [repo_a], Dependency("org.example", "child", "1.0"))

        assert "org.lib:from-parent:9.9" not in _coords(result.dependencies)

    async def test_version_inherited_from_resolved_entry(self, client, cache, maven, repo_a):
        dep = maven.dependency
        maven.add_pom(
            repo_a,
            "org.example:root:1.0",
            dependencies=[dep("org.lib", "core", "3.1"), dep("org.example", "plugin", "1.0")],
        )
        maven.add_pom(repo_a, "org.lib:core:3.1")
        maven.add_pom(repo_a, "org.example:plugin:1.0", dependencies=[dep("org.lib", "core")])

        result = await _resolve(client, cache, [repo_a], Dependency("org.example", "root", "1.0"))

        assert [d.version for d in result.dependencies if d.artifact_id == "core"] == ["3.1"]

    async def test_no_version_anywhere_drops_dependency(self, client, cache, maven, repo_a):
        maven.add_pom(
            repo_a,
            "org.example:root:1.0",
            dependencies=[maven.dependency("org.lib", "unversioned")],
        )

        result = await _resolve(client, cache, [repo_a], Dependency("org.example", "root", "1.0"))

        assert result.found
        assert result.dependencies == []
        assert not any("unversioned" in url for url in maven.requests)

    async def test_managed_test_scope_drops_dependency(self, client, cache, maven, repo_a):
        dep = maven.dependency
        maven.add_pom(
            repo_a,
            "org.example:root:1.0",
            managed=[dep("org.lib", "testing", "1.0", scope="test")],
            dependencies=[dep("org.lib", "testing")],
        )

        result = await _resolve(client, cache, [repo_a], Dependency("org.example", "root", "1.0"))

        assert result.dependencies == []

    async def test_imported_bom(self, client, cache, maven, repo_a):
        dep = maven.dependency
        maven.add_pom(
            repo_a,
            "org.example:root:1.0",
            managed=[dep("org.example", "bom", "2", scope="import", type="pom")],
            dependencies=[dep("org.lib", "from-bom")],
        )
        maven.add_pom(
            repo_a,
            "org.example:bom:2",
            packaging="pom",
            managed=[dep("org.lib", "from-bom", "4.4")],
        )
        maven.add_pom(repo_a, "org.lib:from-bom:4.4")

        result = await _resolve(client, cache, [repo_a], Dependency("org.example", "root", "1.0"))

        assert "org.lib:from-bom:4.4" in _coords(result.dependencies)

    async def test_project_version_property(self, client, cache, maven, repo_a):
        maven.add_pom(
            repo_a,
            "org.example:root:7.0",
            dependencies=[maven.dependency("${project.groupId}", "sibling", "${project.version}")],
        )
        maven.add_pom(repo_a, "org.example:sibling:7.0")

        result = await _resolve(client, cache, [repo_a], Dependency("org.example", "root", "7.0"))

        assert _coords(result.dependencies) == {"org.example:sibling:7.0"}

    async def test_parent_cycle_terminates(self, client, cache, maven, repo_a):
        maven.add_pom(repo_a, "org.example:a:1", parent="org.example:b:1")
        maven.add_pom(repo_a, "org.example:b:1", parent="org.example:a:1")

        result = await _resolve(client, cache, [repo_a], Dependency("org.example", "a", "1"))

        assert result.found
        assert _coords(result.dependencies) == {"org.example:b:1"}
