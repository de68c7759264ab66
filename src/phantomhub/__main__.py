from phantomhub import main

if __name__ == '__main__':
    main()
