from college_notes.storage.keys import (
    approved_key_for,
    build_object_key,
    clean_file_base,
    display_name_from_key,
    folder_path,
    key_timestamp_ms,
    split_filename,
)

NITK_META = {
    "college": "nitk",
    "program_level": "UG",
    "course": "CSE",
    "semester": "6",
    "subject": "OS",
    "upload_type": "notes",
}

BHU_META = {
    "college": "bhu",
    "program_level": "UG",
    "course": "B.Tech",
    "subcourse": "Computer Science",
    "semester": "3",
    "subject": "Data Structures",
    "upload_type": "pyqs",
}


def test_nitk_key_includes_program_level():
    key = build_object_key(NITK_META, "Unit1 Notes.pdf", is_pending=False, now_ms=1718000000000)
    assert key == "college-notes/nitk/UG/cse/sem6/os/notes/unit1_notes_1718000000000.pdf"


def test_pending_prefix():
    key = build_object_key(NITK_META, "Unit1 Notes.pdf", is_pending=True, now_ms=1718000000000)
    assert key.startswith("pending/nitk/UG/")


def test_bhu_key_includes_subcourse_and_skips_level():
    key = build_object_key(BHU_META, "dsa.PDF", is_pending=True, now_ms=1718000000000)
    assert key == "pending/bhu/btech/computerscience/sem3/datastructures/pyqs/dsa_1718000000000.pdf"


def test_subcourse_ignored_outside_bhu():
    meta = dict(NITK_META, subcourse="ai")
    assert "/ai/" not in folder_path(meta, is_pending=False)


def test_existing_timestamp_is_not_duplicated():
    key = build_object_key(NITK_META, "unit1_notes_1718000000000.pdf", is_pending=False, now_ms=1)
    assert key.endswith("/unit1_notes_1718000000000.pdf")


def test_approved_key_keeps_filename():
    pending = "pending/nitk/UG/cse/sem6/os/notes/unit1_notes_1718000000000.pdf"
    assert approved_key_for(pending, NITK_META) == (
        "college-notes/nitk/UG/cse/sem6/os/notes/unit1_notes_1718000000000.pdf"
    )


def test_filename_without_extension():
    key = build_object_key(NITK_META, "README", is_pending=True, now_ms=42)
    assert key.endswith("/readme_42")


def test_unsafe_filename_characters_replaced():
    assert clean_file_base('a<b>:c"d') == "a_b__c_d"
    assert clean_file_base("  lots   of space ") == "lots_of_space"


def test_split_filename():
    assert split_filename("notes.final.PDF") == ("notes.final", "pdf")
    assert split_filename("noext") == ("noext", "")
    assert split_filename(".hidden") == (".hidden", "")


def test_display_name_strips_timestamp():
    assert display_name_from_key("a/b/unit1_notes_1718000000000.pdf") == "unit1_notes.pdf"
    assert display_name_from_key("a/b/plain.pdf") == "plain.pdf"


def test_key_timestamp_is_read_from_filename():
    assert key_timestamp_ms("pending/nitk/UG/cse/sem6/os/notes/unit1_notes_1718000000000.pdf") == 1718000000000
    assert key_timestamp_ms("pending/nitk/readme_1718000000000") == 1718000000000
    assert key_timestamp_ms("pending/nitk/1718000000000_dir/readme.pdf") is None
