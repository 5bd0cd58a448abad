import nixwizard

if __name__ == '__main__':
	nixwizard.run_as_a_module()
