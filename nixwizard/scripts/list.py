from pathlib import Path

print('The following are viable --script options:')

for script in sorted(Path(__file__).parent.glob('*.py')):
	if script.stem in ['__init__', 'list']:
		continue

	print(f'    {script.stem}')
