from __future__ import annotations

import logging
from collections.abc import Sequence

from pscan.rules.errors import ConfigConversionError, InvalidRuleTypeError
from pscan.rules.models import RuleRecord, RuleType
from pscan.store.keypath import indexed_key
from pscan.store.tree import ConfigTree


PASSIVE_SCANS_BASE_KEY = "pscans"
ALL_AUTO_TAG_SCANNERS_KEY = PASSIVE_SCANS_BASE_KEY + ".autoTagScanners.scanner"

AUTO_TAG_SCANNER_NAME_KEY = "name"
AUTO_TAG_SCANNER_TYPE_KEY = "type"
AUTO_TAG_SCANNER_CONFIG_KEY = "config"
AUTO_TAG_SCANNER_REQ_URL_REGEX_KEY = "reqUrlRegex"
AUTO_TAG_SCANNER_REQ_HEAD_REGEX_KEY = "reqHeadRegex"
AUTO_TAG_SCANNER_RES_HEAD_REGEX_KEY = "resHeadRegex"
AUTO_TAG_SCANNER_RES_BODY_REGEX_KEY = "resBodyRegex"
AUTO_TAG_SCANNER_ENABLED_KEY = "enabled"

CONFIRM_REMOVE_AUTO_TAG_SCANNER_KEY = PASSIVE_SCANS_BASE_KEY + ".confirmRemoveAutoTagScanner"
SCAN_ONLY_IN_SCOPE_KEY = PASSIVE_SCANS_BASE_KEY + ".scanOnlyInScope"

DEFAULT_CONFIRM_REMOVE = True
DEFAULT_SCAN_ONLY_IN_SCOPE = False
DEFAULT_RULE_ENABLED = True


def _rule_from_node(node: ConfigTree, name: str) -> RuleRecord:
    return RuleRecord(
        name=name,
        kind=RuleType.parse(node.read_string(AUTO_TAG_SCANNER_TYPE_KEY)),
        config=node.read_string(AUTO_TAG_SCANNER_CONFIG_KEY, "") or "",
        request_url_regex=node.read_string(AUTO_TAG_SCANNER_REQ_URL_REGEX_KEY, "") or "",
        request_header_regex=node.read_string(AUTO_TAG_SCANNER_REQ_HEAD_REGEX_KEY, "") or "",
        response_header_regex=node.read_string(AUTO_TAG_SCANNER_RES_HEAD_REGEX_KEY, "") or "",
        response_body_regex=node.read_string(AUTO_TAG_SCANNER_RES_BODY_REGEX_KEY, "") or "",
        enabled=node.read_bool(AUTO_TAG_SCANNER_ENABLED_KEY, DEFAULT_RULE_ENABLED),
    )


def _require_bool(name: str, value: object) -> None:
    if not isinstance(value, bool):
        raise TypeError(f"{name} must be a bool, got {type(value).__name__}")


class PassiveScanParam:
    """
    Passive scan options: the regex auto tag scanners plus two policy flags.

    State is read from the injected config tree by `load()`. `set_rules()` and the
    flag setters write through to the tree immediately; persisting the tree itself
    (to a file or database) is the owner's job.
    """

    def __init__(self, tree: ConfigTree, *, logger: logging.Logger | None = None) -> None:
        self._tree = tree
        self._logger = logger or logging.getLogger("passive_scan_param")
        self._rules: tuple[RuleRecord, ...] = ()
        self._confirm_remove_rule = DEFAULT_CONFIRM_REMOVE
        self._scan_only_in_scope = DEFAULT_SCAN_ONLY_IN_SCOPE

    def load(self) -> tuple[RuleRecord, ...]:
        self._rules = self._load_rules()
        self._confirm_remove_rule = self._read_flag(CONFIRM_REMOVE_AUTO_TAG_SCANNER_KEY, DEFAULT_CONFIRM_REMOVE)
        self._scan_only_in_scope = self._read_flag(SCAN_ONLY_IN_SCOPE_KEY, DEFAULT_SCAN_ONLY_IN_SCOPE)
        return self._rules

    def _load_rules(self) -> tuple[RuleRecord, ...]:
        try:
            nodes = self._tree.list_child_nodes(ALL_AUTO_TAG_SCANNERS_KEY)
        except ConfigConversionError as e:
            self._logger.error("failed to load auto tag scanners error=%s", e, exc_info=True)
            return ()

        out: list[RuleRecord] = []
        seen: set[str] = set()
        for idx, node in enumerate(nodes):
            try:
                name = node.read_string(AUTO_TAG_SCANNER_NAME_KEY, "") or ""
                if not name or name in seen:
                    continue
                rule = _rule_from_node(node, name)
            except (InvalidRuleTypeError, ConfigConversionError) as e:
                # A bad node is dropped on its own; its name stays available.
                self._logger.warning("skipping auto tag scanner index=%s error=%s", idx, e)
                continue
            seen.add(name)
            out.append(rule)
        return tuple(out)

    def _read_flag(self, key: str, default: bool) -> bool:
        try:
            return self._tree.read_bool(key, default)
        except ConfigConversionError as e:
            self._logger.warning("invalid flag key=%s default=%s error=%s", key, default, e)
            return default

    @property
    def rules(self) -> tuple[RuleRecord, ...]:
        return self._rules

    def set_rules(self, rules: Sequence[RuleRecord]) -> None:
        """
        Replace the rule list and rewrite the scanner subtree from scratch.

        Entries are written at `scanner(0)`, `scanner(1)`, ... in the given order.
        Names are not checked for uniqueness here; `load()` keeps the first of any
        duplicates.
        """
        snapshot = tuple(rules)

        self._tree.clear_subtree(ALL_AUTO_TAG_SCANNERS_KEY)

        for i, rule in enumerate(snapshot):
            base = indexed_key(ALL_AUTO_TAG_SCANNERS_KEY, i) + "."
            self._tree.write(base + AUTO_TAG_SCANNER_NAME_KEY, rule.name)
            self._tree.write(base + AUTO_TAG_SCANNER_TYPE_KEY, str(rule.kind))
            self._tree.write(base + AUTO_TAG_SCANNER_CONFIG_KEY, rule.config)
            self._tree.write(base + AUTO_TAG_SCANNER_REQ_URL_REGEX_KEY, rule.request_url_regex)
            self._tree.write(base + AUTO_TAG_SCANNER_REQ_HEAD_REGEX_KEY, rule.request_header_regex)
            self._tree.write(base + AUTO_TAG_SCANNER_RES_HEAD_REGEX_KEY, rule.response_header_regex)
            self._tree.write(base + AUTO_TAG_SCANNER_RES_BODY_REGEX_KEY, rule.response_body_regex)
            self._tree.write(base + AUTO_TAG_SCANNER_ENABLED_KEY, rule.enabled)

        self._rules = snapshot

    @property
    def confirm_remove_rule(self) -> bool:
        return self._confirm_remove_rule

    @confirm_remove_rule.setter
    def confirm_remove_rule(self, confirm_remove: bool) -> None:
        _require_bool("confirm_remove_rule", confirm_remove)
        self._tree.write(CONFIRM_REMOVE_AUTO_TAG_SCANNER_KEY, confirm_remove)
        self._confirm_remove_rule = confirm_remove

    @property
    def scan_only_in_scope(self) -> bool:
        """Whether passive scanning is limited to messages that are in scope. Defaults to False."""
        return self._scan_only_in_scope

    @scan_only_in_scope.setter
    def scan_only_in_scope(self, scan_only_in_scope: bool) -> None:
        _require_bool("scan_only_in_scope", scan_only_in_scope)
        self._tree.write(SCAN_ONLY_IN_SCOPE_KEY, scan_only_in_scope)
        self._scan_only_in_scope = scan_only_in_scope
