"""
HD44780 instruction set.

Based on the Hitachi HD44780U datasheet, table 6. Each instruction is a
command byte OR'ed with its flag bits and sent with RS low.
"""

# Instructions
CLEAR_DISPLAY = 0x01
RETURN_HOME = 0x02
ENTRY_MODE_SET = 0x04
DISPLAY_CONTROL = 0x08
CURSOR_SHIFT = 0x10
FUNCTION_SET = 0x20
SET_CGRAM_ADDR = 0x40
SET_DDRAM_ADDR = 0x80

# Entry mode flags
ENTRY_LEFT = 0x02
ENTRY_SHIFT_INCREMENT = 0x01  # autoscroll

# Display control flags
DISPLAY_ON = 0x04
CURSOR_ON = 0x02
BLINK_ON = 0x01

# Cursor/display shift flags
DISPLAY_MOVE = 0x08
MOVE_RIGHT = 0x04

# Function set flags
TWO_LINE = 0x08
FONT_5X10 = 0x04

# Power-on defaults: left-to-right entry, display on, cursor and blink off
DEFAULT_ENTRY_MODE = ENTRY_MODE_SET | ENTRY_LEFT
DEFAULT_DISPLAY_CONTROL = DISPLAY_CONTROL | DISPLAY_ON

# Execution times (seconds)
CLEAR_DELAY_S = 0.002
INIT_LONG_DELAY_S = 0.005
INIT_SHORT_DELAY_S = 0.001
