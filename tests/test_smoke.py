import random
import pytest
from eonchar.engine.family import FamilyEngine
from eonchar.engine.loader import load_content
from eonchar.engine.rng import make_rng, FIXED_SEED
from eonchar.engine.settings import Settings, load_settings, save_settings
from eonchar.engine.trace import TraceSession

def test_bundled_content_loads(content_dir):
    content = load_content(content_dir)
    assert {"Människor", "Alver", "Dvärgar", "Troll"} <= set(content.categories)
    assert {"Jorpagu", "Asharer", "Alv", "Dvärg", "Bergstroll"} <= set(content.races)
    for race in content.races.values():
        assert content.category_for(race) is not None, race.name

def test_end_to_end_age_45(fixed_dice):
    eng = FamilyEngine(fixed_dice(3))
    eng.state.character_age = 45
    res = eng.roll_older_siblings()
    assert len(res.siblings) == 1
    s = res.siblings[0]
    assert (s.age, s.litter, s.position) == (48, 1, 1)
    assert eng.state.older_litters == 1

@pytest.mark.parametrize("race", ["Jorpagu", "Asharer", "Alv", "Dvärg", "Bergstroll"])
def test_every_race_rolls_a_family(content_dir, race):
    content = load_content(content_dir)
    for seed in range(25):
        trace = TraceSession()
        eng = FamilyEngine.for_race(content, race, 20 + seed * 3, random.Random(seed), rerolls=1, trace=trace)
        eng.roll_all_siblings()
        eng.roll_parents()
        eng.roll_mother_age()
        eng.roll_father_age()
        eng.reroll_younger_siblings()

        st = eng.state
        assert all(s.age >= 0 for s in st.siblings)
        older = [s.litter for s in st.older_siblings]
        younger = [s.litter for s in st.younger_siblings]
        if older and younger:
            assert min(younger) == max(older) + 1
        for res in (st.mother_age, st.father_age):
            if res is not None:
                assert res.actual_age >= 0 and res.apparent_age >= 0
        assert not any(line.startswith("[Formula]") for line in trace.dump()), trace.dump()

def test_troll_litters_use_labels(content_dir):
    content = load_content(content_dir)
    genders = set()
    for seed in range(40):
        eng = FamilyEngine.for_race(content, "Bergstroll", 30, random.Random(seed))
        eng.roll_all_siblings()
        genders |= {s.gender for s in eng.state.siblings}
    assert genders == {"hane", "hona"}

def test_duplicate_names_rejected(tmp_path):
    (tmp_path / "categories").mkdir()
    (tmp_path / "categories" / "a.yaml").write_text("name: Alver\n", encoding="utf-8")
    (tmp_path / "categories" / "b.json").write_text('{"name": "Alver"}', encoding="utf-8")
    with pytest.raises(RuntimeError):
        load_content(tmp_path)

def test_list_files_and_missing_dirs(tmp_path):
    (tmp_path / "races").mkdir()
    (tmp_path / "races" / "many.yaml").write_text("- name: A\n- name: B\n  category: Nope\n", encoding="utf-8")
    content = load_content(tmp_path)
    assert content.categories == {}
    assert set(content.races) == {"A", "B"}
    assert content.category_for(content.get_race("B")) is None

def test_settings_roundtrip_and_rng(tmp_path):
    path = tmp_path / "settings.json"
    s = load_settings(path)
    assert path.exists() and s == Settings()
    save_settings(Settings(rng_seed_mode="fixed", default_rerolls=3), path)
    s = load_settings(path)
    assert s.default_rerolls == 3
    a, b = make_rng(s), random.Random(FIXED_SEED)
    assert [a.randint(1, 6) for _ in range(10)] == [b.randint(1, 6) for _ in range(10)]
    assert make_rng(s, seed=5).random() == random.Random(5).random()
    assert make_rng(Settings(rng_seed=9)).random() == random.Random(9).random()
