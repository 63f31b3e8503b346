"""Tests shared by both formats: cross-format agreement, StructureDataset, auto_parser."""

from pathlib import Path

import pytest
from conftest import build_cif_text, build_pdb_text

from molparse.config import ParserSettings
from molparse.model import Structure
from molparse.parsers import (
    CIFParser,
    PDBFormatParser,
    StructureDataset,
    StructureIOError,
    StructureParser,
    auto_parser,
    register_parser,
)
from molparse.parsers import dataset


def _chain_summary(structure: Structure) -> list[tuple]:
    return [
        (
            chain.name,
            [(g.name, g.pdb_code, g.kind, g.sec_struc) for g in chain],
            [(a.serial, a.name, a.element, a.coords) for a in chain.atoms],
            [(g.name, g.pdb_code) for g in chain.seqres_groups],
            chain.compound.name if chain.compound else None,
        )
        for chain in structure.chains
    ]


class TestCrossFormat:
    def test_same_hierarchy(self, pdb_text, cif_text, settings):
        from_pdb = PDBFormatParser(settings).parse_string(pdb_text)
        from_cif = CIFParser(settings).parse_string(cif_text)
        assert _chain_summary(from_pdb) == _chain_summary(from_cif)

    def test_same_header(self, pdb_text, cif_text, settings):
        a = PDBFormatParser(settings).parse_string(pdb_text).metadata
        b = CIFParser(settings).parse_string(cif_text).metadata
        for name in (
            "entry_id", "classification", "title", "keywords", "authors", "method",
            "resolution", "deposit_date", "modification_date", "space_group", "cell_a",
        ):
            assert getattr(a, name) == getattr(b, name), name

    def test_same_side_records(self, pdb_text, cif_text, settings):
        a = PDBFormatParser(settings).parse_string(pdb_text)
        b = CIFParser(settings).parse_string(cif_text)
        assert a.ssbonds == b.ssbonds
        assert a.secondary_structure[0].init_seq_num == b.secondary_structure[0].init_seq_num

    def test_same_models(self, settings):
        a = PDBFormatParser(settings).parse_string(build_pdb_text(models=2))
        b = CIFParser(settings).parse_string(build_cif_text(models=2))
        assert (a.num_models, a.is_nmr) == (b.num_models, b.is_nmr)
        assert [c.atom_sequence for c in a.get_chains(1)] == [c.atom_sequence for c in b.get_chains(1)]


class TestThreeChainComplex:
    @pytest.fixture(params=["pdb", "mmcif"])
    def structure(self, request, complex_pdb_text, complex_cif_text, settings) -> Structure:
        if request.param == "pdb":
            return PDBFormatParser(settings).parse_string(complex_pdb_text)
        return CIFParser(settings).parse_string(complex_cif_text)

    def test_chain_sizes(self, structure):
        assert structure.chain_ids == ["L", "H", "I"]
        assert [len(c.amino_acids) for c in structure.chains] == [26, 248, 8]
        assert [len(c.seqres_groups) for c in structure.chains] == [36, 259, 12]

    def test_matched_residues_agree(self, structure):
        for chain in structure.chains:
            matched = [g for g in chain.seqres_groups if g.residue_number is not None]
            assert len(matched) == len(chain.amino_acids), chain.name
            for declared in matched:
                observed = chain.get_group(declared.residue_number, declared.insertion_code)
                assert observed is not None and observed.name == declared.name
            assert "".join(g.letter for g in matched) == chain.atom_sequence

    def test_insertion_codes_carried_over(self, structure):
        heavy = structure.get_chain("H")
        assert [g.pdb_code for g in heavy.seqres_groups[49:54]] == ["65", "66", "66A", "66B", "67"]
        assert [g.pdb_code for g in heavy.seqres_groups[119:124]] == ["133", "", "", "", "137"]

    def test_formats_agree(self, complex_pdb_text, complex_cif_text, settings):
        a = PDBFormatParser(settings).parse_string(complex_pdb_text)
        b = CIFParser(settings).parse_string(complex_cif_text)
        for ca, cb in zip(a.chains, b.chains):
            assert ca.atom_sequence == cb.atom_sequence
            assert ca.seqres_sequence == cb.seqres_sequence
            assert [g.pdb_code for g in ca.seqres_groups] == [g.pdb_code for g in cb.seqres_groups]


class TestAutoParser:
    @pytest.mark.parametrize(
        "name, cls",
        [
            ("1abc.cif", CIFParser),
            ("1abc.cif.gz", CIFParser),
            ("1ABC.CIF", CIFParser),
            ("1abc.pdb", PDBFormatParser),
            ("pdb1abc.ent.gz", PDBFormatParser),
        ],
    )
    def test_by_extension(self, name, cls):
        assert isinstance(auto_parser(name), cls)

    def test_settings_are_passed(self):
        settings = ParserSettings(max_atoms=7)
        assert auto_parser("x.pdb", settings).settings.max_atoms == 7

    def test_unknown_extension(self):
        with pytest.raises(ValueError, match="No parser"):
            auto_parser("structure.xyz")

    def test_register_parser(self, monkeypatch):
        auto_parser("x.pdb")
        monkeypatch.setattr(dataset, "_REGISTRY", dict(dataset._REGISTRY))

        class XYZParser(StructureParser):
            format_name = "xyz"

            def parse_lines(self, lines, source_path=None):
                return Structure().freeze()

            @staticmethod
            def extensions():
                return [".xyz"]

        register_parser(XYZParser)
        assert isinstance(auto_parser("structure.xyz"), XYZParser)


class TestStructureDataset:
    @pytest.fixture
    def directory(self, tmp_path) -> Path:
        (tmp_path / "a").mkdir()
        (tmp_path / "a" / "1abc.pdb").write_text(build_pdb_text())
        (tmp_path / "2xyz.cif").write_text(build_cif_text().replace("1ABC", "2XYZ"))
        (tmp_path / "3nmr.cif").write_text(build_cif_text(models=2).replace("1ABC", "3NMR"))
        (tmp_path / "notes.txt").write_text("not a structure")
        return tmp_path

    def test_from_directory(self, directory, settings):
        ds = StructureDataset.from_directory(directory, pattern="*.cif", settings=settings)
        assert len(ds) == 2
        assert ds.pdb_ids == ["2XYZ", "3NMR"]

    def test_mixed_formats(self, directory, settings):
        paths = [directory / "a" / "1abc.pdb", directory / "2xyz.cif"]
        ds = StructureDataset.from_paths(paths, settings=settings)
        assert [s.metadata.format for s in ds] == ["pdb", "mmcif"]

    def test_index_and_cache(self, directory, settings):
        ds = StructureDataset.from_directory(directory, pattern="*.cif", settings=settings)
        assert ds[0] is ds[0]
        assert ds[-1].entry_id == "3NMR"
        assert [s.entry_id for s in ds[0:2]] == ["2XYZ", "3NMR"]

    def test_filter(self, directory, settings):
        ds = StructureDataset.from_directory(directory, pattern="*.cif", settings=settings)
        nmr = ds.filter(lambda s: s.is_nmr)
        assert nmr.pdb_ids == ["3NMR"]

    def test_summary(self, directory, settings):
        ds = StructureDataset.from_directory(directory, pattern="*.cif", settings=settings)
        summary = ds.summary()
        assert summary["total"] == 2
        assert summary["nmr_count"] == 1
        assert summary["total_chains"] == 4
        assert summary["total_compounds"] == 6
        assert summary["methods"] == {"X-RAY DIFFRACTION": 1, "SOLUTION NMR": 1}
        assert summary["resolution_min"] == 2.4

    def test_explicit_parser(self, directory, settings):
        ds = StructureDataset.from_paths([directory / "a" / "1abc.pdb"], parser=PDBFormatParser(settings))
        assert ds.to_list()[0].entry_id == "1ABC"

    def test_parse_error_propagates(self, directory, settings):
        ds = StructureDataset.from_paths([directory / "missing.pdb"], settings=settings)
        with pytest.raises(OSError):
            ds[0]

    def test_load_all_skips_unreadable_files(self, directory, settings):
        (directory / "broken.cif").write_text("")
        ds = StructureDataset.from_directory(directory, pattern="*.cif", settings=settings)
        assert [s.entry_id for s in ds.load_all()] == ["2XYZ", "3NMR"]
        assert list(ds.failures) == [directory / "broken.cif"]
        with pytest.raises(StructureIOError):
            ds[2]

    def test_summary_counts_failures(self, directory, settings):
        (directory / "broken.cif").write_text("")
        summary = StructureDataset.from_directory(directory, pattern="*.cif", settings=settings).summary()
        assert (summary["files"], summary["total"], summary["failed"]) == (3, 2, 1)
        assert summary["ca_only_count"] == 0
        assert summary["overflow_count"] == 0

    @pytest.mark.parametrize(
        "ceilings, expected",
        [
            (dict(ca_threshold=10), (2, 0)),
            (dict(max_atoms=5), (0, 2)),
        ],
    )
    def test_summary_counts_ceilings(self, directory, ceilings, expected):
        ds = StructureDataset.from_directory(directory, pattern="*.cif", settings=ParserSettings(**ceilings))
        summary = ds.summary()
        assert (summary["ca_only_count"], summary["overflow_count"]) == expected

    def test_filter_leaves_out_failures(self, directory, settings):
        (directory / "broken.cif").write_text("")
        ds = StructureDataset.from_directory(directory, pattern="*.cif", settings=settings)
        assert ds.filter(lambda s: True).pdb_ids == ["2XYZ", "3NMR"]
