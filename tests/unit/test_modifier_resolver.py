"""
Tests for the pathology modifier resolver and its cache.
"""
import threading
import pytest
from ecg_lab.api_models import AbnormalityPattern, MorphologyParameters, PathologyType, QRSMorphology
from ecg_lab.pathologies import PATHOLOGIES, PATHOLOGY_MODIFIERS, ModifierResolver, coerce_pathology

class TestModifierResolver:
    """Test lookup, fallback and memoization."""

    @pytest.mark.unit
    def test_table_is_total(self):
        assert set(PATHOLOGY_MODIFIERS) == set(PathologyType)
        assert len(PATHOLOGIES) == 26

    @pytest.mark.unit
    def test_normal_resolves_to_defaults(self, resolver):
        assert resolver.resolve(PathologyType.NORMAL) == MorphologyParameters()

    @pytest.mark.unit
    @pytest.mark.parametrize("unknown", ["torsades", "", "NORMAL", None])
    def test_unknown_identifier_falls_back_to_normal(self, resolver, unknown):
        assert resolver.resolve(unknown) == MorphologyParameters()

    @pytest.mark.unit
    def test_string_and_enum_keys_share_cache_entry(self, resolver):
        by_enum = resolver.resolve(PathologyType.ATRIAL_FLUTTER)
        by_string = resolver.resolve("atrial-flutter")
        assert by_enum is by_string

    @pytest.mark.unit
    @pytest.mark.parametrize("pathology", list(PathologyType))
    def test_cache_hit_returns_same_instance(self, resolver, pathology):
        first = resolver.resolve(pathology)
        second = resolver.resolve(pathology)
        assert first is second
        assert first == resolver.compute(pathology)

    @pytest.mark.unit
    def test_cache_filled_lazily(self, resolver):
        assert resolver.cached_pathologies() == set()
        resolver.resolve(PathologyType.HYPERKALAEMIA)
        assert resolver.cached_pathologies() == {PathologyType.HYPERKALAEMIA}

    @pytest.mark.unit
    def test_resolved_parameters_are_immutable(self, resolver):
        modifiers = resolver.resolve(PathologyType.LONG_QT_SYNDROME)
        with pytest.raises(Exception):
            modifiers.qt_interval = 2.0
        assert resolver.resolve(PathologyType.LONG_QT_SYNDROME).qt_interval == 1.4

    @pytest.mark.unit
    def test_concurrent_resolution_yields_single_instance(self, resolver):
        results = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            results.append(resolver.resolve(PathologyType.WOLFF_PARKINSON_WHITE))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 8
        assert all(result is results[0] for result in results)

    @pytest.mark.unit
    def test_custom_table(self):
        resolver = ModifierResolver({PathologyType.NORMAL: {"qrs_amplitude": 2.0}})
        assert resolver.resolve(PathologyType.NORMAL).qrs_amplitude == 2.0
        assert resolver.resolve(PathologyType.ATRIAL_FLUTTER) == MorphologyParameters()

class TestPathologyMorphology:
    """Spot checks of the morphology table."""

    @pytest.mark.unit
    def test_wpw_intermittent_preexcitation(self, resolver):
        wpw = resolver.resolve(PathologyType.WOLFF_PARKINSON_WHITE)
        assert wpw.delta_wave
        assert wpw.pr_interval == 0.7
        assert wpw.abnormality_frequency == 0.22
        assert wpw.abnormality_pattern == AbnormalityPattern.RANDOM

    @pytest.mark.unit
    def test_bundle_branch_blocks(self, resolver):
        lbbb = resolver.resolve(PathologyType.LEFT_BUNDLE_BRANCH_BLOCK)
        rbbb = resolver.resolve(PathologyType.RIGHT_BUNDLE_BRANCH_BLOCK)
        assert lbbb.qrs_morphology == QRSMorphology.LBBB
        assert rbbb.qrs_morphology == QRSMorphology.RBBB
        assert lbbb.qrs_width == rbbb.qrs_width == 1.5

    @pytest.mark.unit
    def test_av_blocks(self, resolver):
        assert resolver.resolve(PathologyType.FIRST_DEGREE_AV_BLOCK).pr_interval == 1.5
        assert resolver.resolve(PathologyType.SECOND_DEGREE_AV_BLOCK_TYPE1).dropped_beats == 0.25
        assert resolver.resolve(PathologyType.SECOND_DEGREE_AV_BLOCK_TYPE2).dropped_beats == 0.33
        third = resolver.resolve(PathologyType.THIRD_DEGREE_AV_BLOCK)
        assert third.av_dissociation and third.ventricular_rate == 40.0

    @pytest.mark.unit
    def test_coerce_pathology(self):
        assert coerce_pathology("st-elevation-mi") is PathologyType.ST_ELEVATION_MI
        assert coerce_pathology(PathologyType.HYPERKALAEMIA) is PathologyType.HYPERKALAEMIA
        assert coerce_pathology("bogus") is PathologyType.NORMAL
