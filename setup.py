from setuptools import find_packages, setup

setup(
    name='exifbridge',
    version='1.0.0',
    description='asyncio client for a long-lived exiftool -stay_open batch process',
    author='isantolin',
    author_email='',
    packages=find_packages(include=['exifbridge', 'exifbridge.*']),
    python_requires='>=3.11',
    install_requires=[
        'msgspec',
        'marshmallow>=3.13',
        'transitions',
        'psutil',
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-asyncio',
        ],
    },
    classifiers=[
        'Programming Language :: Python :: 3',
        'Operating System :: POSIX :: Linux',
    ],
)
