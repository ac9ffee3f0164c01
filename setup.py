from setuptools import find_packages, setup

setup(
    name="lcd-display",
    version="0.1.0",
    description="Drive HD44780 character LCDs over GPIO, I2C expanders and SPI shift registers",
    author="Garrett Johnson",
    packages=find_packages(include=["lcd_display", "lcd_display.*"]),
    python_requires=">=3.11",
    install_requires=[
        "gpiozero>=2.0",
        "numpy>=1.26",
        "smbus2>=0.4.3",
        "spidev>=3.6; sys_platform == 'linux'",
    ],
    extras_require={
        "test": ["pytest>=7.4", "pytest-asyncio>=0.23"],
    },
    tests_require=["pytest", "pytest-asyncio"],
)
