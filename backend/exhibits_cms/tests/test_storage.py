from exhibits_cms.storage import adopt_media, provision_namespace, safe_filename


def test_safe_filename_strips_paths_and_unsafe_characters():
    assert safe_filename("../../etc/passwd") == "passwd"
    assert safe_filename("C:\\uploads\\my photo.jpg") == "my_photo.jpg"


def test_provision_namespace_is_idempotent(tmp_path):
    first = provision_namespace(tmp_path, "abc")
    second = provision_namespace(tmp_path, "abc")
    assert first == second == tmp_path / "abc"
    assert first.is_dir()


def test_adopt_media_prefixes_and_moves(tmp_path):
    (tmp_path / "hero.jpg").write_bytes(b"data")
    assert adopt_media(tmp_path, "abc", "hero.jpg") == "abc_hero.jpg"
    assert (tmp_path / "abc" / "abc_hero.jpg").read_bytes() == b"data"
    assert not (tmp_path / "hero.jpg").exists()


def test_adopt_media_passes_through_empty_and_adopted_names(tmp_path):
    assert adopt_media(tmp_path, "abc", "") == ""
    assert adopt_media(tmp_path, "abc", None) == ""
    assert adopt_media(tmp_path, "abc", "abc_hero.jpg") == "abc_hero.jpg"
    assert adopt_media(tmp_path, "abc", "missing.png") == "abc_missing.png"
