import os
import sys
import tempfile
import unittest
from pathlib import Path

sys.path.append(os.path.join(os.path.dirname(__file__), "../scripts"))

from discovery import find_source_files, list_source_files
from extractor import SourceExtractor, SymbolInfo, is_async_symbol
from extractor.typescript import extract_ts_symbols, mask_strings_and_comments
from hasher import ContentHasher


def write_file(root: Path, rel_path: str, content: str) -> Path:
    full_path = root / rel_path
    full_path.parent.mkdir(parents=True, exist_ok=True)
    full_path.write_text(content, encoding="utf-8")
    return full_path


TS_SOURCE = """import { task } from "@trigger.dev/sdk/v3";

// helper for "quoted" things { not a brace }
export async function processImage(url: string): Promise<string> {
  const data = await fetch(url);
  return resize(data, "}");
}

function resize(data: unknown, marker: string) {
  return `${marker}`;
}

export const LIMIT = 10;

export const double = (n: number) => n * 2;

export const analyzeTask = task({
  id: "analyze-image",
  run: async (payload: { url: string }) => {
    await processImage(payload.url);
  },
});

export class ImageService {
  async load(id: string) {
    return this.fetchRaw(id);
  }

  private fetchRaw(id: string) {
    return id;
  }
}
"""

PY_SOURCE = '''import os

from celery import shared_task

MAX_SIZE = 1024
__all__ = ["process"]


def helper(value):
    return value * 2


@shared_task(name="images.process")
def process(path):
    data = helper(len(path))
    return os.path.join(path, str(data))


class Service:
    def run(self):
        return self.prepare()

    async def prepare(self):
        return helper(1)
'''


class TestTypeScriptExtractor(unittest.TestCase):
    def setUp(self) -> None:
        self.result = extract_ts_symbols(TS_SOURCE, "src/images.ts")
        self.by_name = {symbol.name: symbol for symbol in self.result.symbols}

    def test_top_level_symbols_and_kinds(self) -> None:
        self.assertEqual(self.result.errors, [])
        kinds = {name: symbol.kind for name, symbol in self.by_name.items()}
        self.assertEqual(kinds["processImage"], "function")
        self.assertEqual(kinds["resize"], "function")
        self.assertEqual(kinds["LIMIT"], "const")
        self.assertEqual(kinds["double"], "function")
        self.assertEqual(kinds["analyzeTask"], "const")
        self.assertEqual(kinds["ImageService"], "class")
        self.assertEqual(kinds["ImageService.load"], "method")
        self.assertEqual(kinds["ImageService.fetchRaw"], "method")

    def test_bodies_ignore_braces_in_strings_and_comments(self) -> None:
        symbol = self.by_name["processImage"]
        self.assertTrue(symbol.body.startswith("{"))
        self.assertTrue(symbol.body.endswith("}"))
        self.assertIn('resize(data, "}")', symbol.body)
        self.assertEqual(symbol.params, "url: string")
        self.assertEqual(symbol.start_line, 4)
        self.assertEqual(symbol.end_line, 7)

    def test_const_full_text_includes_initializer(self) -> None:
        symbol = self.by_name["analyzeTask"]
        self.assertIn('id: "analyze-image"', symbol.full_text)
        self.assertTrue(symbol.full_text.startswith("export const analyzeTask"))
        self.assertTrue(symbol.full_text.endswith(");"))

    def test_async_detection(self) -> None:
        self.assertTrue(is_async_symbol(self.by_name["processImage"]))
        self.assertFalse(is_async_symbol(self.by_name["resize"]))
        self.assertTrue(is_async_symbol(self.by_name["ImageService.load"]))

    def test_symbol_kinds_are_a_closed_set(self) -> None:
        symbol = self.by_name["resize"]
        with self.assertRaises(ValueError):
            SymbolInfo(**{**symbol.__dict__, "kind": "interface"})

    def test_mask_keeps_offsets(self) -> None:
        text = 'const a = "x{y}"; // }\n'
        masked = mask_strings_and_comments(text)
        self.assertEqual(len(masked), len(text))
        self.assertNotIn("{", masked)
        self.assertTrue(masked.endswith("\n"))

    def test_overload_signatures_are_skipped(self) -> None:
        source = (
            "export function pick(a: string): string;\n"
            "export function pick(a: number): number;\n"
            "export function pick(a: any) {\n  return a;\n}\n"
        )
        result = extract_ts_symbols(source, "pick.ts")
        self.assertEqual([symbol.name for symbol in result.symbols], ["pick"])
        self.assertIn("a: any", result.symbols[0].params)


class TestSourceExtractor(unittest.TestCase):
    def test_call_sites_for_typescript(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = write_file(Path(temp_dir), "src/images.ts", TS_SOURCE)
            extractor = SourceExtractor()
            names = [call.name for call in extractor.extract_call_sites(path, "processImage")]
            self.assertEqual(names, ["fetch", "resize"])
            task_calls = [call.name for call in extractor.extract_call_sites(path, "analyzeTask")]
            self.assertIn("task", task_calls)
            self.assertIn("processImage", task_calls)
            self.assertNotIn("async", task_calls)
            method_calls = extractor.extract_call_sites(path, "ImageService.load")
            self.assertEqual([call.name for call in method_calls], ["this.fetchRaw"])
            self.assertEqual(method_calls[0].expression, "this.fetchRaw(id)")

    def test_python_symbols_and_calls(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = write_file(Path(temp_dir), "app/tasks.py", PY_SOURCE)
            extractor = SourceExtractor()
            result = extractor.extract_symbols(path)
            self.assertEqual(result.errors, [])
            by_name = {symbol.name: symbol for symbol in result.symbols}
            self.assertEqual(
                sorted(by_name),
                ["MAX_SIZE", "Service", "Service.prepare", "Service.run", "helper", "process"],
            )
            process = by_name["process"]
            self.assertTrue(process.full_text.startswith("@shared_task"))
            self.assertEqual(process.params, "path")
            self.assertTrue(is_async_symbol(by_name["Service.prepare"]))
            self.assertFalse(is_async_symbol(by_name["Service.run"]))
            calls = [call.name for call in extractor.extract_call_sites(path, "process")]
            self.assertEqual(calls, ["helper", "len", "os.path.join", "str"])
            run_calls = extractor.extract_call_sites(path, "Service.run")
            self.assertEqual([call.name for call in run_calls], ["self.prepare"])

    def test_python_syntax_error_is_reported(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = write_file(Path(temp_dir), "broken.py", "def broken(:\n    pass\n")
            result = SourceExtractor().extract_symbols(path)
            self.assertEqual(result.symbols, [])
            self.assertEqual(len(result.errors), 1)

    def test_missing_file_is_an_error_not_an_exception(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            extractor = SourceExtractor()
            result = extractor.extract_symbols(Path(temp_dir) / "gone.ts")
            self.assertEqual(result.symbols, [])
            self.assertTrue(result.errors[0].startswith("File not found"))
            self.assertIsNone(extractor.extract_symbol(Path(temp_dir) / "gone.ts", "x"))
            self.assertEqual(extractor.extract_call_sites(Path(temp_dir) / "gone.ts", "x"), [])

    def test_cache_refreshes_when_file_changes(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = write_file(Path(temp_dir), "a.ts", "export function foo() {\n  return 1;\n}\n")
            extractor = SourceExtractor()
            self.assertIsNotNone(extractor.extract_symbol(path, "foo"))
            write_file(Path(temp_dir), "a.ts", "export function renamedFoo() {\n  return 12;\n}\n")
            self.assertIsNone(extractor.extract_symbol(path, "foo"))
            self.assertIsNotNone(extractor.extract_symbol(path, "renamedFoo"))


class TestHasher(unittest.TestCase):
    def test_hash_is_sha256_hex_and_sensitive_to_comments(self) -> None:
        hasher = ContentHasher()
        first = extract_ts_symbols("function f(a) {\n  return a;\n}\n", "f.ts").symbols[0]
        same = extract_ts_symbols("\n\nfunction f(a) {\n  return a;\n}\n", "f.ts").symbols[0]
        commented = extract_ts_symbols("function f(a) {\n  // note\n  return a;\n}\n", "f.ts").symbols[0]
        digest = hasher.hash_symbol(first)
        self.assertEqual(len(digest), 64)
        self.assertTrue(all(ch in "0123456789abcdef" for ch in digest))
        self.assertEqual(digest, hasher.hash_symbol(same))
        self.assertNotEqual(digest, hasher.hash_symbol(commented))


class TestDiscovery(unittest.TestCase):
    def test_source_walk_skips_dependency_and_build_dirs(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = Path(temp_dir)
            write_file(repo, "src/app.ts", "export const ok = 1\n")
            write_file(repo, "src/types.d.ts", "declare const x: number;\n")
            write_file(repo, "node_modules/pkg/index.js", "module.exports = {}\n")
            write_file(repo, "dist/app.js", "var ok = 1\n")
            write_file(repo, ".git/hooks/x.py", "print(1)\n")
            write_file(repo, "_docsync/src/app/ok.md", "---\n---\n")
            write_file(repo, "worker/jobs.py", "x = 1\n")
            self.assertEqual(list_source_files(repo), ["src/app.ts", "worker/jobs.py"])
            found = find_source_files(repo)
            self.assertEqual(len(found), 2)
            self.assertTrue(all(Path(path).is_absolute() for path in found))
            self.assertEqual(find_source_files(repo / "missing"), [])


if __name__ == "__main__":
    unittest.main()
