import os
import sys
import tempfile
import unittest
from pathlib import Path

sys.path.append(os.path.join(os.path.dirname(__file__), "../scripts"))

from discovery import list_source_files
from extractor import SourceExtractor, SymbolInfo
from graph import (
    FlowGraph,
    GraphBuilder,
    GraphEdge,
    GraphNode,
    GraphStore,
    edge_type_counts,
    entry_points,
    paths_between,
    reachable_from,
)
from matchers import MATCHERS, CeleryMatcher, NextjsMatcher, TriggerDevMatcher, match_entry_point
from matchers.nextjs import nextjs_route_path
from matchers.types import EntryPointMatch
from resolver import DiscoveredConnection, VerifiedConnection


def write_file(root: Path, rel_path: str, content: str) -> None:
    full_path = root / rel_path
    full_path.parent.mkdir(parents=True, exist_ok=True)
    full_path.write_text(content, encoding="utf-8")


def make_symbol(name: str, file_path: str, full_text: str, kind: str = "function") -> SymbolInfo:
    return SymbolInfo(
        name=name,
        kind=kind,
        file_path=file_path,
        params="",
        body=full_text,
        full_text=full_text,
        start_line=1,
        end_line=full_text.count("\n") + 1,
    )


ROUTE_SOURCE = """import { tasks } from "@trigger.dev/sdk/v3";

export async function POST(request: Request) {
  const body = await request.json();
  await tasks.trigger("analyze-image", body);
  return Response.json({ ok: true });
}
"""

TASK_SOURCE = """import { task } from "@trigger.dev/sdk/v3";

export const analyzeTask = task({
  id: "analyze-image",
  run: async (payload: { url: string }) => {
    await processImage(payload.url);
  },
});

export async function processImage(url: string) {
  return normalize(url);
}

function normalize(url: string) {
  return url.trim();
}

export function loop() {
  return loop();
}
"""

CELERY_SOURCE = '''from celery import shared_task


@shared_task(name="reports.build")
def build_report(report_id):
    return report_id


def schedule(report_id):
    build_report.delay(report_id)
'''


def build_project(repo: Path) -> GraphBuilder:
    write_file(repo, "app/api/images/route.ts", ROUTE_SOURCE)
    write_file(repo, "src/trigger/analyze.ts", TASK_SOURCE)
    write_file(repo, "worker/reports.py", CELERY_SOURCE)
    return GraphBuilder(project_root=repo)


class TestMatchers(unittest.TestCase):
    def test_nextjs_route_paths(self) -> None:
        self.assertEqual(nextjs_route_path("app/api/users/[id]/route.ts"), "/api/users/:id")
        self.assertEqual(nextjs_route_path("apps/web/src/app/(marketing)/about/page.tsx"), "/about")
        self.assertEqual(nextjs_route_path("pages/api/[...slug].ts"), "/api/*slug")
        self.assertEqual(nextjs_route_path("pages/index.tsx"), "/")
        self.assertIsNone(nextjs_route_path("src/lib/db.ts"))

    def test_nextjs_entry_types(self) -> None:
        matcher = NextjsMatcher()
        get = make_symbol("GET", "app/api/users/route.ts", "export async function GET() {\n  return 1;\n}")
        found = matcher.match(get)
        self.assertEqual(found.entry_type, "api-route")
        self.assertEqual(found.metadata, {"httpMethod": "GET", "route": "/api/users"})
        page = make_symbol("Home", "app/page.tsx", "export default function Home() {\n  return null;\n}")
        self.assertEqual(matcher.match(page).entry_type, "page")
        helper = make_symbol("helper", "app/api/users/route.ts", "function helper() {\n  return 1;\n}")
        self.assertIsNone(matcher.match(helper))
        action = make_symbol("save", "src/actions.ts", 'export async function save() {\n  "use server";\n}')
        action = SymbolInfo(**{**action.__dict__, "body": '{\n  "use server";\n}'})
        self.assertEqual(matcher.match(action).entry_type, "server-action")
        middleware = make_symbol("middleware", "middleware.ts", "export function middleware(req) {\n  return req;\n}")
        self.assertEqual(matcher.match(middleware).entry_type, "middleware")

    def test_trigger_and_inngest_and_python_matchers(self) -> None:
        task = make_symbol(
            "analyzeTask", "src/trigger/analyze.ts", 'task({ id: "analyze-image", run: async () => {} })', kind="const"
        )
        _, found = match_entry_point(task)
        self.assertEqual(found.entry_type, "task")
        self.assertEqual(found.metadata, {"taskId": "analyze-image"})

        inngest_fn = make_symbol(
            "syncUser",
            "src/inngest/sync.ts",
            'inngest.createFunction({ id: "sync-user" }, { event: "app/user.created" }, async () => {})',
            kind="const",
        )
        matcher, found = match_entry_point(inngest_fn)
        self.assertEqual(matcher.name, "inngest")
        self.assertEqual(found.metadata, {"functionId": "sync-user", "eventTrigger": "app/user.created"})

        route = SymbolInfo(
            name="list_items",
            kind="function",
            file_path="api/items.py",
            params="",
            body="    return []",
            full_text='@router.get("/items")\nasync def list_items():\n    return []',
            start_line=1,
            end_line=3,
        )
        matcher, found = match_entry_point(route)
        self.assertEqual(matcher.name, "python-web")
        self.assertEqual(found.metadata, {"httpMethod": "GET", "route": "/items"})

    def test_entry_types_are_a_closed_set(self) -> None:
        self.assertEqual(EntryPointMatch("task").entry_type, "task")
        with self.assertRaises(ValueError):
            EntryPointMatch("cron-job")

    def test_first_matcher_wins_in_declared_order(self) -> None:
        self.assertIsInstance(MATCHERS[0], NextjsMatcher)
        self.assertIsInstance(MATCHERS[-1], CeleryMatcher)
        symbol = make_symbol("GET", "app/api/jobs/route.ts", 'export const GET = task({ id: "x" })', kind="const")
        matcher, _ = match_entry_point(symbol, [TriggerDevMatcher(), NextjsMatcher()])
        self.assertEqual(matcher.name, "trigger-dev")


class TestGraphBuilder(unittest.TestCase):
    def test_builds_nodes_entry_points_and_edges(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = Path(temp_dir).resolve()
            builder = build_project(repo)
            graph = builder.build(list_source_files(repo))
            nodes = {node.id: node for node in graph.nodes}

            post = nodes["app/api/images/route.ts:POST"]
            self.assertEqual(post.entry_type, "api-route")
            self.assertEqual(post.metadata["route"], "/api/images")
            self.assertTrue(post.is_async)
            self.assertEqual(len(post.hash), 64)

            analyze = nodes["src/trigger/analyze.ts:analyzeTask"]
            self.assertEqual(analyze.entry_type, "task")
            self.assertEqual(analyze.metadata["taskId"], "analyze-image")
            self.assertEqual(nodes["worker/reports.py:build_report"].metadata["taskId"], "reports.build")
            self.assertEqual(nodes["src/trigger/analyze.ts:normalize"].line_range, (14, 16))

            edges = {(edge.source, edge.target, edge.type) for edge in graph.edges}
            self.assertIn(
                ("src/trigger/analyze.ts:analyzeTask", "src/trigger/analyze.ts:processImage", "direct-call"), edges
            )
            self.assertIn(
                ("src/trigger/analyze.ts:processImage", "src/trigger/analyze.ts:normalize", "direct-call"), edges
            )
            self.assertIn(("app/api/images/route.ts:POST", "src/trigger/analyze.ts:analyzeTask", "trigger-task"), edges)
            self.assertIn(("worker/reports.py:schedule", "worker/reports.py:build_report", "task-dispatch"), edges)

    def test_edges_never_dangle_or_self_loop(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = Path(temp_dir).resolve()
            graph = build_project(repo).build(list_source_files(repo))
            ids = graph.node_ids()
            for edge in graph.edges:
                self.assertIn(edge.source, ids)
                self.assertIn(edge.target, ids)
                self.assertNotEqual(edge.source, edge.target)
            self.assertEqual(len({edge.id for edge in graph.edges}), len(graph.edges))

    def test_add_verified_connections(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = Path(temp_dir).resolve()
            builder = build_project(repo)
            graph = builder.build(list_source_files(repo))
            extractor = SourceExtractor()
            source = extractor.extract_symbol(repo / "src/trigger/analyze.ts", "loop")
            target_file = str(repo / "worker/reports.py")
            target = extractor.extract_symbol(target_file, "build_report")
            connection = DiscoveredConnection(type="Queue_Dispatch", target_hint="reports.build", reason="queued")
            verified = VerifiedConnection(source, connection, target, target_file)
            before = len(graph.edges)
            self.assertEqual(builder.add_verified_connections(graph, [verified]), 1)
            self.assertEqual(builder.add_verified_connections(graph, [verified]), 0)
            self.assertEqual(len(graph.edges), before + 1)
            edge = graph.edges[-1]
            self.assertEqual(edge.type, "queue-dispatch")
            self.assertEqual(edge.label, "reports.build")
            self.assertTrue(edge.is_async)
            with self.assertRaises(TypeError):
                builder.add_verified_connections(graph, [connection])


class TestGraphStoreAndQuery(unittest.TestCase):
    def _graph(self) -> FlowGraph:
        def node(node_id: str, entry_type=None) -> GraphNode:
            return GraphNode(node_id, node_id, "function", "a.ts", False, "0" * 64, (1, 2), entry_type)

        def edge(source: str, target: str) -> GraphEdge:
            return GraphEdge(f"{source}->{target}#direct-call", source, target, "direct-call")

        return FlowGraph(
            nodes=[node("a", "api-route"), node("b"), node("c"), node("d"), node("e")],
            edges=[edge("a", "b"), edge("b", "c"), edge("a", "c"), edge("c", "a"), edge("d", "e")],
        )

    def test_store_round_trip_and_absent_snapshot(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = GraphStore(Path(temp_dir) / "_docsync")
            self.assertIsNone(store.read())
            graph = self._graph()
            store.write(graph)
            loaded = store.read()
            self.assertEqual(loaded.to_dict(), graph.to_dict())
            payload = graph.to_dict()
            self.assertEqual(set(payload), {"version", "generatedAt", "nodes", "edges"})
            self.assertEqual(payload["nodes"][0]["entryType"], "api-route")
            self.assertIn("lineRange", payload["nodes"][0])

    def test_queries(self) -> None:
        graph = self._graph()
        self.assertEqual([node.id for node in entry_points(graph)], ["a"])
        nodes, edges = reachable_from(graph, "b")
        self.assertEqual(sorted(node.id for node in nodes), ["a", "b", "c"])
        self.assertEqual(len(edges), 4)
        self.assertEqual(paths_between(graph, "a", "c"), [["a", "b", "c"], ["a", "c"]])
        self.assertEqual(paths_between(graph, "a", "c", max_paths=1), [["a", "b", "c"]])
        self.assertEqual(paths_between(graph, "a", "e"), [])
        self.assertEqual(edge_type_counts(graph), {"direct-call": 5})


if __name__ == "__main__":
    unittest.main()
