from gw_navigation import REQUIRED_FIELDS_MESSAGE, InputField, ListItem, NavigationState, Screen

CATALOG = [
    ("Gmail", ["Inbox", "Search", "Compose"]),
    ("Drive", ["My Files", "Upload"]),
]


def _nav(**kwargs):
    return NavigationState(catalog=CATALOG, **kwargs)


def _items(n, prefix='i'):
    return [ListItem(f"{prefix}{k}", f"Item {k}") for k in range(n)]


def _in_view(items=3):
    nav = _nav()
    nav.select_service()
    nav.show_items(_items(items), status="loaded")
    return nav


def test_cursors_saturate():
    nav = _nav()
    nav.move_up()
    assert nav.selected_service_index == 0
    for _ in range(5):
        nav.move_down()
    assert nav.selected_service_index == 1
    nav.select_service()
    assert nav.screen == Screen.ACTION_SELECT
    assert nav.action_titles() == ["My Files", "Upload"]
    nav.move_down()
    nav.move_down()
    assert nav.selected_action_index == 1


def test_list_cursor_on_empty_list_stays_put():
    nav = _in_view(items=0)
    nav.move_down()
    assert nav.item_cursor == 0
    assert nav.current_item() is None


def test_back_from_service_select_quits():
    nav = _nav()
    nav.go_back()
    assert nav.should_quit


def test_back_from_view_clears_scoped_state():
    nav = _in_view()
    nav.move_down()
    nav.next_page_token = "tok"
    nav.page_loader = lambda token: None
    nav.go_back()
    assert nav.screen == Screen.ACTION_SELECT
    assert nav.items == []
    assert nav.detail is None
    assert nav.item_cursor == 0
    assert nav.scroll_offset == 0
    assert nav.next_page_token is None
    assert nav.page_loader is None


def test_second_listing_starts_fresh():
    nav = _in_view()
    nav.append_items(_items(2, prefix='more'), None)
    assert len(nav.items) == 5
    nav.show_items(_items(2, prefix='again'), status="again")
    assert [it.id for it in nav.items] == ['again0', 'again1']
    assert nav.item_cursor == 0


def test_loader_is_only_kept_with_a_token():
    nav = _nav()
    loader = lambda token: None  # noqa: E731
    nav.show_items(_items(1), None, loader)
    assert nav.page_loader is None
    nav.show_items(_items(1), "next", loader)
    assert nav.page_loader is loader
    nav.append_items(_items(1, prefix='p2'), None)
    assert nav.page_loader is None
    assert nav.next_page_token is None


def test_drill_in_detail_returns_to_list():
    nav = _in_view()
    nav.move_down()
    assert nav.open_detail({'id': 'i1'})
    assert nav.detail == {'id': 'i1'}
    assert not nav.open_detail({'id': 'other'})
    nav.move_down()
    assert nav.scroll_offset == 1
    assert nav.item_cursor == 1
    nav.go_back()
    assert nav.screen == Screen.ACTION_VIEW
    assert nav.detail is None
    assert nav.scroll_offset == 0
    assert len(nav.items) == 3
    assert nav.item_cursor == 1
    nav.go_back()
    assert nav.screen == Screen.ACTION_SELECT


def test_singleton_detail_replaces_items():
    nav = _in_view()
    nav.show_detail({'settings': True}, "Settings loaded")
    assert nav.items == []
    assert nav.detail == {'settings': True}
    nav.move_up()
    assert nav.scroll_offset == 0
    nav.go_back()
    assert nav.screen == Screen.ACTION_SELECT
    assert nav.detail is None


def test_required_field_gate():
    nav = _nav()
    nav.select_service()
    nav.begin_input([InputField("To", required=True), InputField("CC")])
    assert nav.screen == Screen.INPUT
    assert not nav.input_ready()
    assert nav.status == REQUIRED_FIELDS_MESSAGE
    assert nav.screen == Screen.INPUT
    nav.type_text("   ")
    assert nav.missing_required() == ["To"]
    nav.backspace()
    nav.backspace()
    nav.backspace()
    nav.type_text("a@b.c")
    assert nav.input_ready()


def test_begin_input_copies_field_templates():
    template = InputField("Title", required=True)
    nav = _nav()
    nav.begin_input([template])
    nav.type_text("x")
    assert template.value == ''


def test_field_cycling_wraps_and_newline_only_in_multiline():
    nav = _nav()
    nav.begin_input([InputField("A"), InputField("Body", multiline=True)])
    nav.prev_field()
    assert nav.input_field_cursor == 1
    nav.newline()
    assert nav.current_field().value == "\n"
    nav.next_field()
    assert nav.input_field_cursor == 0
    nav.newline()
    assert nav.current_field().value == ''


def test_cancelling_input_discards_values():
    nav = _nav()
    nav.select_service()
    nav.begin_input([InputField("A")])
    nav.type_text("abc")
    nav.go_back()
    assert nav.screen == Screen.ACTION_SELECT
    assert nav.input_fields == []


def test_confirm_flow():
    nav = _in_view()
    nav.move_down()
    assert nav.request_delete()
    assert nav.screen == Screen.CONFIRM
    assert nav.confirm_message == "Delete 'Item 1'? (y/n)"
    nav.go_back()
    assert nav.screen == Screen.ACTION_VIEW
    assert nav.status == "Cancelled"
    nav.request_delete()
    nav.remove_item('i1')
    nav.finish_confirm("Deleted successfully")
    assert [it.id for it in nav.items] == ['i0', 'i2']
    assert nav.screen == Screen.ACTION_VIEW


def test_remove_last_item_clamps_cursor():
    nav = _in_view(items=2)
    nav.move_down()
    nav.remove_item('i1')
    assert nav.item_cursor == 0
    nav.remove_item('i0')
    assert nav.item_cursor == 0
    assert nav.current_item() is None


def test_account_overlay_takes_arrow_keys():
    nav = _in_view()
    nav.open_account_switcher(['work', 'personal', 'shared'], 'personal')
    assert nav.account_cursor == 1
    nav.move_down()
    nav.move_down()
    assert nav.account_cursor == 2
    assert nav.item_cursor == 0
    assert nav.selected_account() == 'shared'
    nav.reset_after_switch('shared', 'Shared')
    assert not nav.account_switcher_visible
    assert nav.screen == Screen.SERVICE_SELECT
    assert nav.items == []
    assert nav.account_name == 'shared'
    assert nav.status == "Switched to Shared"
