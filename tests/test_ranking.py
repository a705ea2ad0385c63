"""Tests for grouping, top-N truncation and ordering of scored words"""

from bpwordzee.ranking import RankingEngine
from bpwordzee.schemas import ScoredWord


def scored(*pairs):
    return [ScoredWord(word=w, score=s) for w, s in pairs]


def test_empty_candidates():
    result = RankingEngine().rank([])
    assert result.words == []
    assert result.total_returned == 0
    assert result.total_before_truncation == 0
    assert result.per_length_stats == {}


def test_top_ten_per_length():
    words = scored(*[(f'W{i:03d}', i) for i in range(15)])  # 4 letters each
    result = RankingEngine().rank(words)

    assert [w.score for w in result.words] == list(range(14, 4, -1))
    stats = result.per_length_stats[4]
    assert (stats.total, stats.kept, stats.max_score) == (15, 10, 14)
    # lowest score seen before truncation
    assert stats.min_score == 0
    assert result.total_returned == 10
    assert result.total_before_truncation == 15


def test_out_of_range_lengths_are_dropped():
    result = RankingEngine().rank(scored(('A', 5), ('AB', 7), ('AAA', 3), ('AAA', 9), ('ABCDEFGH', 50)))

    assert [(w.word, w.score) for w in result.words] == [('AAA', 9), ('AAA', 3)]
    assert list(result.per_length_stats) == [3]
    stats = result.per_length_stats[3]
    assert (stats.total, stats.kept, stats.max_score, stats.min_score) == (2, 2, 9, 3)
    assert result.total_before_truncation == 2


def test_global_order_spans_all_lengths():
    words = scored(('SOL', 30), ('MAR', 29), ('CASAS', 5), ('CASA', 12), ('CASERON', 1))
    result = RankingEngine().rank(words)
    assert [w.word for w in result.words] == ['SOL', 'MAR', 'CASA', 'CASAS', 'CASERON']
    assert sorted(result.per_length_stats) == [3, 4, 5, 7]


def test_ties_keep_arrival_order():
    words = scored(('UNO', 5), ('DOS', 5), ('TRES', 5), ('SEIS', 5), ('ATE', 5))
    result = RankingEngine().rank(words)
    # length groups are concatenated 3 -> 7 before the stable global sort
    assert [w.word for w in result.words] == ['UNO', 'DOS', 'ATE', 'TRES', 'SEIS']


def test_reranking_is_idempotent():
    words = scored(*[(f'P{i:02d}X', i % 7) for i in range(14)], ('OSO', 4), ('ALA', 6), ('AROMA', 6))
    engine = RankingEngine()
    first = engine.rank(words)
    second = engine.rank(first.words)

    assert [(w.word, w.score) for w in second.words] == [(w.word, w.score) for w in first.words]
    assert second.total_returned == first.total_returned


def test_scores_are_kept_verbatim():
    result = RankingEngine().rank(scored(('ROSA', 7.5), ('RISA', 7)))
    assert [w.score for w in result.words] == [7.5, 7]
    assert isinstance(result.words[1].score, int)


def test_payload_uses_wire_names():
    payload = RankingEngine().rank(scored(('CASA', 12), ('OCA', 3))).to_payload()
    assert payload == {
        'success': True,
        'data': {
            'palabras': [{'palabra': 'CASA', 'puntos': 12}, {'palabra': 'OCA', 'puntos': 3}],
            'total': 2,
            'total_antes_filtro': 2,
            'estadisticas': {
                'longitud_3': {'total': 1, 'mejores': 1, 'puntos_max': 3, 'puntos_min': 3},
                'longitud_4': {'total': 1, 'mejores': 1, 'puntos_max': 12, 'puntos_min': 12},
            },
        },
    }


def test_custom_top_n():
    words = scored(*[(f'AB{i}', i) for i in range(5)])
    result = RankingEngine(top_n=2).rank(words)
    assert [w.word for w in result.words] == ['AB4', 'AB3']
    assert result.per_length_stats[3].kept == 2
