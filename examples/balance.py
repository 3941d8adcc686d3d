#!/usr/bin/env python3
"""
Balance Sheet Example - GameSheet Demo

Loads a sheet of enemy parameters, shows what each entry read, and
edits the player level to show that everything depending on it is
recomputed on the next read while the rest stays cached.

Run with: python examples/balance.py
"""

from pathlib import Path

import gamesheet

HERE = Path(__file__).parent


def show(sheet, names):
    for name in names:
        try:
            value = gamesheet.thaw(sheet.read(name))
        except gamesheet.SheetError as e:
            value = f"<{type(e).__name__}: {e}>"
        print(f"  {name:<18} = {value!r}")


def main():
    sheet = gamesheet.load(HERE / 'balance.gamesheet', validate=True)

    print("Level 5:")
    show(sheet, sheet.names())

    print("\nWhat enemy_toughness read:")
    print(" ", ", ".join(sheet.dependencies('enemy_toughness')))

    print("\nRaising player_level to 9 invalidates:")
    sheet.set_source('player_level', '9')
    stale = [name for name in sheet.names() if sheet.status(name) is gamesheet.EntryStatus.STALE]
    print(" ", ", ".join(stale))

    print("\nLevel 9:")
    show(sheet, ['enemy_health', 'enemy_armor', 'enemy_name', 'loot_table'])

    print("\nA cycle is reported, not looped on:")
    sheet.set_source('growth', 'enemy_health / 1000')
    show(sheet, ['enemy_health'])

    print("\nWith hard mode layered on top of a fresh copy:")
    stack = gamesheet.SheetStack([
        gamesheet.load(HERE / 'balance.gamesheet'),
        gamesheet.load(HERE / 'hard_mode.gamesheet'),
    ])
    for name in ['enemy_health', 'enemy_armor', 'enemy_name']:
        owner = 'hard_mode' if stack.owner(name) is stack.layers[-1] else 'base'
        print(f"  {name:<18} = {stack.read(name)!r}  ({owner})")


if __name__ == '__main__':
    main()
