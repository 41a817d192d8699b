"""
Unit tests for FileIndexer.

Covers registration, the rejection taxonomy, deprecation warnings, symlink
identity, metadata scheduling and fatal error handling.
"""

import logging
import sys
from pathlib import Path

import pytest

from srcindex.core.errors import DuplicatePathError, IndexingInternalError, MetadataError, PathResolutionError
from srcindex.core.exclusions import PatternExclusionFilters
from srcindex.core.models import Computed, FileType, NotComputed, ProjectContext
from srcindex.services.issue_exclusions import IssueExclusionPattern, IssueExclusionsLoader
from tests.support.indexing_support import (
    XOO_AND_JAVA,
    RecordingProgress,
    RejectingFilter,
    candidate,
    make_indexer,
    single_module_project,
    write_file,
)


@pytest.fixture
def base_dir(tmp_path: Path) -> Path:
    root = tmp_path.resolve() / "project"
    root.mkdir()
    return root


class TestRegistration:
    def test_indexes_known_and_unknown_languages(self, base_dir):
        project, module = single_module_project(base_dir)
        indexer = make_indexer(project)
        a = write_file(base_dir, "src/a.xoo")
        b = write_file(base_dir, "src/b.java")

        result = indexer.index_files([candidate(a, module), candidate(b, module)])

        registry = indexer.session.registry
        assert result.indexed_files == 2
        assert len(registry) == 2
        xoo = registry.get("src/a.xoo")
        java = registry.get("src/b.java")
        assert xoo.language == "xoo"
        assert xoo.published is True
        assert java.language is None
        assert java.published is False

    def test_record_paths_and_type(self, base_dir):
        project, module = single_module_project(base_dir)
        indexer = make_indexer(project)
        path = write_file(base_dir, "test/sampleTest.xoo")

        record = indexer.index_file(candidate(path, module, FileType.TEST))

        assert record.path == path
        assert record.project_relative_path == "test/sampleTest.xoo"
        assert record.module_relative_path == "test/sampleTest.xoo"
        assert record.type == FileType.TEST
        assert record.module_key == "com.foo.project"

    def test_ids_are_strictly_increasing(self, base_dir):
        project, module = single_module_project(base_dir)
        indexer = make_indexer(project)
        paths = [write_file(base_dir, f"src/f{i}.xoo") for i in range(5)]

        ids = [indexer.index_file(candidate(p, module)).id for p in paths]

        assert ids == sorted(ids)
        assert len(set(ids)) == len(ids)

    def test_debug_trace_of_indexed_files(self, base_dir, caplog):
        project, module = single_module_project(base_dir)
        indexer = make_indexer(project)
        main = write_file(base_dir, "src/a.xoo")
        test = write_file(base_dir, "test/b.unknown")

        with caplog.at_level(logging.DEBUG):
            indexer.index_file(candidate(main, module))
            indexer.index_file(candidate(test, module, FileType.TEST))

        assert "'src/a.xoo' indexed with language 'xoo'" in caplog.messages
        assert "'test/b.unknown' indexed as test with language 'null'" in caplog.messages

    def test_progress_message_after_each_registration(self, base_dir):
        project, module = single_module_project(base_dir)
        progress = RecordingProgress()
        indexer = make_indexer(project, progress=progress)
        a = write_file(base_dir, "src/a.xoo")
        b = write_file(base_dir, "src/b.xoo")

        indexer.index_files([candidate(a, module), candidate(b, module)])

        assert progress.messages == [
            "1 file indexed...  (last one was src/a.xoo)",
            "2 files indexed...  (last one was src/b.xoo)",
        ]

    def test_issue_exclusions_receive_indexed_files(self, base_dir):
        project, module = single_module_project(base_dir)
        loader = IssueExclusionsLoader([IssueExclusionPattern(resource_key="src/**", rule_key="*")])
        indexer = make_indexer(project, issue_exclusions=loader)
        a = write_file(base_dir, "src/a.xoo")
        b = write_file(base_dir, "other/b.xoo")

        record_a = indexer.index_file(candidate(a, module))
        record_b = indexer.index_file(candidate(b, module))

        assert loader.file_id("src/a.xoo") == record_a.id
        assert loader.file_id("other/b.xoo") == record_b.id
        assert loader.patterns_for(record_a.id)[0].resource_key == "src/**"
        assert loader.patterns_for(record_b.id) == []

    def test_inactive_issue_exclusions_are_not_called(self, base_dir):
        project, module = single_module_project(base_dir)
        loader = IssueExclusionsLoader()
        indexer = make_indexer(project, issue_exclusions=loader)
        path = write_file(base_dir, "src/a.xoo")

        indexer.index_file(candidate(path, module))

        assert loader.file_id("src/a.xoo") is None


class TestDuplicates:
    def test_same_file_twice_is_fatal(self, base_dir):
        project, module = single_module_project(base_dir)
        indexer = make_indexer(project)
        path = write_file(base_dir, "src/a.xoo")

        with pytest.raises(DuplicatePathError) as exc_info:
            indexer.index_files([candidate(path, module), candidate(path, module, FileType.TEST)])

        assert "File src/a.xoo can't be indexed twice" in str(exc_info.value)
        assert exc_info.value.project_relative_path == "src/a.xoo"
        assert len(indexer.session.registry) == 1

    def test_duplicate_across_modules_is_fatal(self, base_dir):
        project = ProjectContext(
            key="com.foo.project", base_dir=base_dir, exclusion_filters=PatternExclusionFilters()
        )
        root = project.add_module("root", base_dir)
        module1 = project.add_module("module1", base_dir / "module1")
        path = write_file(base_dir, "module1/src/sample.xoo")
        indexer = make_indexer(project)

        with pytest.raises(DuplicatePathError, match="File module1/src/sample.xoo can't be indexed twice"):
            indexer.index_files([candidate(path, root), candidate(path, module1)])

    def test_no_registration_after_fatal_error(self, base_dir):
        project, module = single_module_project(base_dir)
        indexer = make_indexer(project)
        a = write_file(base_dir, "src/a.xoo")
        b = write_file(base_dir, "src/b.xoo")

        with pytest.raises(DuplicatePathError):
            indexer.index_files([candidate(a, module), candidate(a, module), candidate(b, module)])

        assert indexer.session.stopped
        assert indexer.index_file(candidate(b, module)) is None
        assert "src/b.xoo" not in indexer.session.registry

    def test_parallel_duplicates_register_once(self, base_dir):
        project, module = single_module_project(base_dir)
        indexer = make_indexer(project, max_workers=8)
        path = write_file(base_dir, "src/a.xoo")

        with pytest.raises(DuplicatePathError):
            indexer.index_files([candidate(path, module) for _ in range(50)])

        assert len(indexer.session.registry) == 1


class TestExclusions:
    def test_project_exclusion_is_silent(self, base_dir, caplog):
        project, module = single_module_project(base_dir, exclusions=["**/another.*"])
        indexer = make_indexer(project)
        path = write_file(base_dir, "src/another.xoo")

        with caplog.at_level(logging.WARNING):
            result = indexer.index_files([candidate(path, module)])

        assert result.excluded_by_patterns == 1
        assert result.indexed_files == 0
        assert caplog.records == []
        assert indexer.session.warnings.messages == []

    def test_module_level_exclusion_warns_once(self, base_dir, caplog):
        project = ProjectContext(
            key="com.foo.project", base_dir=base_dir, exclusion_filters=PatternExclusionFilters()
        )
        project.add_module("modA", base_dir / "modA")
        mod_b = project.add_module(
            "modB", base_dir / "modB", exclusion_filters=PatternExclusionFilters(exclusions=["**/a.xoo"])
        )
        indexer = make_indexer(project)
        first = write_file(base_dir, "modB/src/a.xoo")
        second = write_file(base_dir, "modB/other/a.xoo")

        with caplog.at_level(logging.WARNING):
            result = indexer.index_files([candidate(first, mod_b), candidate(second, mod_b)])

        assert result.excluded_by_patterns == 2
        assert len(indexer.session.registry) == 0
        warnings = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "Defining inclusion/exclusions at module level is deprecated" in warnings[0]
        assert "module 'modB'" in warnings[0]
        assert not any("module relative paths" in w for w in warnings)
        assert indexer.session.warnings.messages == warnings

    def test_project_patterns_matching_module_relative_paths_warn(self, base_dir, caplog):
        project = ProjectContext(
            key="com.foo.project",
            base_dir=base_dir,
            exclusion_filters=PatternExclusionFilters(exclusions=["src/sample.xoo"]),
        )
        mod_a = project.add_module("moduleA", base_dir / "moduleA")
        path = write_file(base_dir, "moduleA/src/sample.xoo")
        indexer = make_indexer(project)

        with caplog.at_level(logging.WARNING):
            result = indexer.index_files([candidate(path, mod_a)])

        assert mod_a.uses_project_scope
        assert result.excluded_by_patterns == 1
        assert caplog.messages == [
            "File 'moduleA/src/sample.xoo' was excluded because patterns are still evaluated using "
            "module relative paths but this is deprecated. Please update file inclusion/exclusion "
            "configuration so that patterns refer to project relative paths."
        ]

    def test_extension_filter_rejection(self, base_dir, caplog):
        project, module = single_module_project(base_dir)
        file_filter = RejectingFilter(".java")
        indexer = make_indexer(project, filters=[file_filter])
        a = write_file(base_dir, "src/a.xoo")
        b = write_file(base_dir, "src/b.java")

        with caplog.at_level(logging.DEBUG):
            result = indexer.index_files([candidate(a, module), candidate(b, module)])

        assert result.indexed_files == 1
        assert result.excluded_by_extensions == 1
        assert result.excluded_by_patterns == 0
        assert file_filter.seen == ["src/a.xoo", "src/b.java"]
        assert any(
            m.startswith("'src/b.java' excluded by ") and m.endswith("RejectingFilter")
            for m in caplog.messages
        )

    def test_filters_short_circuit(self, base_dir):
        project, module = single_module_project(base_dir)
        first = RejectingFilter(".xoo")
        second = RejectingFilter(".java")
        indexer = make_indexer(project, filters=[first, second])
        path = write_file(base_dir, "src/a.xoo")

        assert indexer.index_file(candidate(path, module)) is None
        assert second.seen == []


class TestForcedLanguage:
    def test_file_outside_forced_language_is_invisible(self, base_dir, caplog):
        project, module = single_module_project(base_dir)
        indexer = make_indexer(project, languages=XOO_AND_JAVA, forced_language="java")
        path = write_file(base_dir, "src/a.xoo")

        with caplog.at_level(logging.WARNING):
            result = indexer.index_files([candidate(path, module)])

        assert len(indexer.session.registry) == 0
        assert result.forced_language_skipped == 1
        assert result.excluded_by_patterns == 0
        assert len(caplog.records) == 1
        assert "forced language 'java'" in caplog.records[0].getMessage()

    def test_file_of_forced_language_is_indexed(self, base_dir):
        project, module = single_module_project(base_dir)
        indexer = make_indexer(project, languages=XOO_AND_JAVA, forced_language="java")
        path = write_file(base_dir, "src/A.java")

        record = indexer.index_file(candidate(path, module))

        assert record.language == "java"


class TestBoundary:
    def test_file_outside_project_is_skipped(self, base_dir, caplog):
        project, module = single_module_project(base_dir)
        indexer = make_indexer(project)
        outside = write_file(base_dir.parent, "outside/a.xoo")

        with caplog.at_level(logging.WARNING):
            result = indexer.index_files([candidate(outside, module)])

        assert result.outside_basedir == 1
        assert len(indexer.session.registry) == 0
        assert "is not located in project basedir" in caplog.messages[0]

    def test_missing_file_is_fatal(self, base_dir):
        project, module = single_module_project(base_dir)
        indexer = make_indexer(project)

        with pytest.raises(PathResolutionError) as exc_info:
            indexer.index_files([candidate(base_dir / "src" / "missing.xoo", module)])

        assert indexer.session.stopped
        assert str(exc_info.value).startswith("Unable to resolve path of file src/missing.xoo: ")

    def test_missing_file_with_existing_parent_is_fatal(self, base_dir):
        project, module = single_module_project(base_dir)
        indexer = make_indexer(project)
        write_file(base_dir, "src/a.xoo")

        with pytest.raises(PathResolutionError, match="file src/gone.xoo: "):
            indexer.index_file(candidate(base_dir / "src" / "gone.xoo", module))

    def test_differently_cased_candidate_is_not_mapped_to_sibling(self, base_dir):
        project, module = single_module_project(base_dir)
        indexer = make_indexer(project)
        write_file(base_dir, "src/a.xoo")
        wrong_case = base_dir / "src" / "A.xoo"
        if wrong_case.exists():
            pytest.skip("case-insensitive filesystem")

        with pytest.raises(PathResolutionError, match="src/A.xoo"):
            indexer.index_file(candidate(wrong_case, module))

        assert "src/a.xoo" not in indexer.session.registry


@pytest.mark.skipif(sys.platform == "win32", reason="Symlink tests require admin privileges on Windows")
class TestSymlinks:
    def test_symlink_keeps_its_own_path(self, base_dir):
        project, module = single_module_project(base_dir)
        indexer = make_indexer(project)
        target = write_file(base_dir, "real/a.xoo")
        link = base_dir / "src" / "link.xoo"
        link.parent.mkdir(parents=True)
        link.symlink_to(target)

        record = indexer.index_file(candidate(link, module))

        assert record.path == link
        assert record.project_relative_path == "src/link.xoo"

    def test_symlink_escaping_project_is_skipped(self, base_dir):
        project, module = single_module_project(base_dir)
        indexer = make_indexer(project)
        target = write_file(base_dir.parent, "outside/a.xoo")
        link = base_dir / "src" / "a.xoo"
        link.parent.mkdir(parents=True)
        link.symlink_to(target)

        result = indexer.index_files([candidate(link, module)])

        assert result.outside_basedir == 1
        assert len(indexer.session.registry) == 0

    def test_symlinked_parent_is_resolved(self, base_dir):
        project, module = single_module_project(base_dir)
        indexer = make_indexer(project)
        write_file(base_dir, "real/a.xoo")
        (base_dir / "alias").symlink_to(base_dir / "real", target_is_directory=True)

        record = indexer.index_file(candidate(base_dir / "alias" / "a.xoo", module))

        assert record.project_relative_path == "real/a.xoo"

    def test_dangling_symlink_does_not_stop_the_run(self, base_dir):
        project, module = single_module_project(base_dir)
        indexer = make_indexer(project)
        link = base_dir / "src" / "dangling.xoo"
        link.parent.mkdir(parents=True)
        link.symlink_to(base_dir / "src" / "gone.xoo")
        valid = write_file(base_dir, "src/a.xoo")

        result = indexer.index_files([candidate(link, module), candidate(valid, module)])

        registry = indexer.session.registry
        assert not indexer.session.stopped
        assert result.indexed_files == 2
        assert registry.get("src/dangling.xoo").path == link
        assert "src/a.xoo" in registry

    def test_dangling_symlink_escaping_project_is_skipped(self, base_dir):
        project, module = single_module_project(base_dir)
        indexer = make_indexer(project)
        link = base_dir / "src" / "a.xoo"
        link.parent.mkdir(parents=True)
        link.symlink_to(base_dir.parent / "outside" / "gone.xoo")

        result = indexer.index_files([candidate(link, module)])

        assert result.outside_basedir == 1
        assert len(indexer.session.registry) == 0


class TestMetadata:
    def test_metadata_is_lazy_by_default(self, base_dir):
        project, module = single_module_project(base_dir)
        indexer = make_indexer(project)
        path = write_file(base_dir, "src/a.xoo", "line1\nline2\n")

        record = indexer.index_file(candidate(path, module))

        assert isinstance(record.metadata_state, NotComputed)
        assert record.metadata_state.encoding == "UTF-8"
        metadata = record.metadata()
        assert metadata.lines == 3
        assert isinstance(record.metadata_state, Computed)

    def test_preloaded_metadata(self, base_dir, caplog):
        project, module = single_module_project(base_dir)
        indexer = make_indexer(project, preload_metadata=True)
        path = write_file(base_dir, "src/sample.java")

        with caplog.at_level(logging.DEBUG):
            record = indexer.index_file(candidate(path, module))

        assert isinstance(record.metadata_state, Computed)
        assert "'src/sample.java' generated metadata with charset 'UTF-8'" in caplog.messages

    def test_preload_failure_is_fatal(self, base_dir):
        project, module = single_module_project(base_dir)
        indexer = make_indexer(project, preload_metadata=True)
        path = base_dir / "src" / "bad.xoo"
        path.parent.mkdir(parents=True)
        path.write_bytes(b"\x80\x81 not utf-8")

        with pytest.raises(MetadataError, match="src/bad.xoo"):
            indexer.index_files([candidate(path, module)])

        assert indexer.session.stopped

    def test_any_preload_callback_failure_is_wrapped(self, base_dir):
        def failing_callback(module_key_with_branch, record, encoding):
            raise ValueError("unsupported content")

        project, module = single_module_project(base_dir)
        indexer = make_indexer(project, preload_metadata=True, metadata_callback=failing_callback)
        path = write_file(base_dir, "src/a.xoo")

        with pytest.raises(MetadataError, match="src/a.xoo: unsupported content"):
            indexer.index_file(candidate(path, module))

        assert indexer.session.stopped
        assert isinstance(indexer.session.failure, MetadataError)


class TestInternalErrors:
    def test_unexpected_error_stops_the_session(self, base_dir):
        class BrokenFilter(RejectingFilter):
            def accept(self, record):
                raise RuntimeError("filter crashed")

        project, module = single_module_project(base_dir)
        indexer = make_indexer(project, filters=[BrokenFilter(".xoo")])
        a = write_file(base_dir, "src/a.xoo")
        b = write_file(base_dir, "src/b.xoo")

        with pytest.raises(IndexingInternalError, match="filter crashed"):
            indexer.index_file(candidate(a, module))

        assert indexer.session.stopped
        assert indexer.index_file(candidate(b, module)) is None
        assert len(indexer.session.registry) == 0
