"""Rule evaluation engine package.

Modules:
    coercion   -- value conversion applied before every comparison
    evaluator  -- first-match-wins evaluation of an ordered rule list
    rule_store -- copy-on-write editing operations for rule lists
    ids        -- rule id generators
"""
